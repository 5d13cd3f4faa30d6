"""
Manifest Reader - Parser for binary XML chunk documents.

Only what the editor needs is decoded:
  - The string pool (every string, plus its original encoding for exact write-back)
  - Start-element chunks (name and attributes)
Everything else stays as raw bytes so an unedited document writes back
byte for byte.
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path

from mcinjector.document import (
    ChunkDocument,
    RawChunk,
    ResValue,
    StringPool,
    XmlAttribute,
    XmlStartElement,
)
from mcinjector.errors import ManifestFormatError
from mcinjector.spec import (
    ATTRIBUTE_SIZE,
    CHUNK_HEADER_SIZE,
    RES_STRING_POOL_TYPE,
    RES_XML_START_ELEMENT_TYPE,
    RES_XML_TYPE,
    START_ELEMENT_EXT_SIZE,
    STRING_POOL_HEADER_SIZE,
    UTF8_FLAG,
)

logger = logging.getLogger(__name__)


class ManifestReader:
    """
    Binary XML reader.

    Usage:
        doc = ManifestReader.parse(raw_bytes)
        doc = ManifestReader.read("AndroidManifest.xml")
    """

    @staticmethod
    def is_axml_bytes(data: bytes) -> bool:
        """Fast check: does the buffer start with an XML container chunk header?"""
        if len(data) < CHUNK_HEADER_SIZE:
            return False
        chunk_type, header_size = struct.unpack_from("<HH", data, 0)
        return chunk_type == RES_XML_TYPE and header_size >= CHUNK_HEADER_SIZE

    @classmethod
    def read(cls, path: str | Path) -> ChunkDocument:
        """Fully parse a binary XML file."""
        with open(path, "rb") as f:
            data = f.read()
        return cls.parse(data)

    @classmethod
    def parse(cls, data: bytes) -> ChunkDocument:
        """Parse bytes into a ChunkDocument. Raises ManifestFormatError."""
        data = bytes(data)
        if len(data) < CHUNK_HEADER_SIZE:
            raise ManifestFormatError(f"Buffer too short for a chunk document: {len(data)} bytes")

        chunk_type, header_size, size = struct.unpack_from("<HHI", data, 0)
        if chunk_type != RES_XML_TYPE:
            raise ManifestFormatError(
                f"Not a binary XML document: chunk type 0x{chunk_type:04x}, expected 0x{RES_XML_TYPE:04x}"
            )
        if header_size < CHUNK_HEADER_SIZE or header_size > size or size > len(data):
            raise ManifestFormatError(
                f"Inconsistent document header: header size {header_size}, "
                f"declared size {size}, buffer size {len(data)}"
            )

        doc = ChunkDocument(header_extra=data[CHUNK_HEADER_SIZE:header_size], trailer=data[size:])

        offset = header_size
        while offset < size:
            if size - offset < CHUNK_HEADER_SIZE:
                raise ManifestFormatError(f"Truncated chunk header at offset {offset}")
            chunk_type, chunk_header_size, chunk_size = struct.unpack_from("<HHI", data, offset)
            if (
                chunk_header_size < CHUNK_HEADER_SIZE
                or chunk_size < chunk_header_size
                or offset + chunk_size > size
            ):
                raise ManifestFormatError(
                    f"Bad chunk at offset {offset}: type 0x{chunk_type:04x}, "
                    f"header size {chunk_header_size}, size {chunk_size}"
                )

            raw = data[offset:offset + chunk_size]
            if chunk_type == RES_STRING_POOL_TYPE:
                doc.chunks.append(cls._parse_string_pool(raw, offset))
            elif chunk_type == RES_XML_START_ELEMENT_TYPE:
                doc.chunks.append(cls._parse_start_element(raw, offset))
            else:
                doc.chunks.append(RawChunk(type=chunk_type, data=raw))
            offset += chunk_size

        logger.debug("Parsed %r", doc)
        return doc

    # =========================================================================
    # String pool
    # =========================================================================

    @classmethod
    def _parse_string_pool(cls, raw: bytes, at: int) -> StringPool:
        _, header_size, size = struct.unpack_from("<HHI", raw, 0)
        if header_size < STRING_POOL_HEADER_SIZE:
            raise ManifestFormatError(
                f"String pool header at offset {at} is {header_size} bytes, "
                f"expected at least {STRING_POOL_HEADER_SIZE}"
            )

        string_count, style_count, flags, strings_start, styles_start = struct.unpack_from(
            "<5I", raw, CHUNK_HEADER_SIZE
        )
        offsets_end = header_size + 4 * (string_count + style_count)
        if offsets_end > size:
            raise ManifestFormatError(
                f"String pool at offset {at} declares {string_count} strings and "
                f"{style_count} styles, more than its {size} bytes can hold"
            )

        string_offsets = struct.unpack_from(f"<{string_count}I", raw, header_size)
        style_offsets = list(struct.unpack_from(f"<{style_count}I", raw, header_size + 4 * string_count))

        strings_end = styles_start if style_count and styles_start else size
        if string_count and not offsets_end <= strings_start <= strings_end <= size:
            raise ManifestFormatError(
                f"String pool at offset {at} has string data outside the chunk: "
                f"start {strings_start}, end {strings_end}, size {size}"
            )
        string_data = raw[strings_start:strings_end] if string_count else b""

        is_utf8 = bool(flags & UTF8_FLAG)
        strings: list[str] = []
        encoded: list[bytes | None] = []
        for index, string_offset in enumerate(string_offsets):
            try:
                if is_utf8:
                    value, entry = _decode_utf8(string_data, string_offset)
                else:
                    value, entry = _decode_utf16(string_data, string_offset)
            except (IndexError, struct.error) as e:
                raise ManifestFormatError(
                    f"String {index} of the pool at offset {at} runs past the string data"
                ) from e
            strings.append(value)
            encoded.append(entry)

        style_data = raw[styles_start:size] if style_count else b""

        return StringPool(
            strings=strings,
            flags=flags,
            style_offsets=style_offsets,
            style_data=style_data,
            header_extra=raw[STRING_POOL_HEADER_SIZE:header_size],
            encoded=encoded,
            raw=raw,
        )

    # =========================================================================
    # Start element
    # =========================================================================

    @classmethod
    def _parse_start_element(cls, raw: bytes, at: int) -> XmlStartElement:
        _, header_size, size = struct.unpack_from("<HHI", raw, 0)
        ext = header_size
        if size < ext + START_ELEMENT_EXT_SIZE:
            raise ManifestFormatError(f"Start element at offset {at} is too short: {size} bytes")

        (
            namespace,
            name,
            attribute_start,
            attribute_size,
            attribute_count,
            id_index,
            class_index,
            style_index,
        ) = struct.unpack_from("<iiHHHHHH", raw, ext)

        if attribute_start < START_ELEMENT_EXT_SIZE:
            raise ManifestFormatError(
                f"Start element at offset {at} places attributes at {attribute_start}, "
                f"inside its own {START_ELEMENT_EXT_SIZE}-byte header"
            )
        if attribute_count and attribute_size < ATTRIBUTE_SIZE:
            raise ManifestFormatError(
                f"Start element at offset {at} has {attribute_size}-byte attributes, "
                f"expected at least {ATTRIBUTE_SIZE}"
            )

        first = ext + attribute_start
        end = first + attribute_count * attribute_size
        if end > size:
            raise ManifestFormatError(
                f"Start element at offset {at} declares {attribute_count} attributes "
                f"that run past its {size} bytes"
            )

        attributes = []
        for i in range(attribute_count):
            pos = first + i * attribute_size
            attr_ns, attr_name, raw_value, value_size, res0, data_type, data = struct.unpack_from(
                "<iiiHBBI", raw, pos
            )
            attributes.append(XmlAttribute(
                namespace=attr_ns,
                name=attr_name,
                raw_value=raw_value,
                typed_value=ResValue(size=value_size, res0=res0, data_type=data_type, data=data),
                extra=raw[pos + ATTRIBUTE_SIZE:pos + attribute_size],
            ))

        return XmlStartElement(
            header=raw[CHUNK_HEADER_SIZE:header_size],
            namespace=namespace,
            name=name,
            attribute_start=attribute_start,
            attribute_size=attribute_size,
            id_index=id_index,
            class_index=class_index,
            style_index=style_index,
            attributes=attributes,
            ext_padding=raw[ext + START_ELEMENT_EXT_SIZE:first],
            trailer=raw[end:size],
        )


# =============================================================================
# String decoding
# =============================================================================

def _decode_length(data: bytes, offset: int, char_size: int) -> tuple[int, int]:
    """
    Read a pool length prefix. Returns (length, prefix byte count).

    UTF-8 pools use one byte, or two when the high bit (0x80) is set.
    UTF-16 pools use one u16, or two when the high bit (0x8000) is set.
    """
    if char_size == 1:
        first = data[offset]
        if first & 0x80:
            return ((first & 0x7F) << 8) | data[offset + 1], 2
        return first, 1

    first = struct.unpack_from("<H", data, offset)[0]
    if first & 0x8000:
        second = struct.unpack_from("<H", data, offset + 2)[0]
        return ((first & 0x7FFF) << 16) | second, 4
    return first, 2


def _decode_utf8(data: bytes, offset: int) -> tuple[str, bytes]:
    # UTF-16 length first, then the UTF-8 byte length
    _, skip = _decode_length(data, offset, 1)
    n_bytes, skip2 = _decode_length(data, offset + skip, 1)
    start = offset + skip + skip2
    end = start + n_bytes
    if end > len(data):
        raise IndexError(end)
    payload = data[start:end]
    try:
        value = payload.decode("utf-8", "surrogatepass")
    except UnicodeDecodeError:
        logger.warning("Pool string at offset %d is not valid UTF-8, decoding with replacement", offset)
        value = payload.decode("utf-8", "replace")
    return value, data[offset:end + 1]


def _decode_utf16(data: bytes, offset: int) -> tuple[str, bytes]:
    n_units, skip = _decode_length(data, offset, 2)
    start = offset + skip
    end = start + n_units * 2
    if end > len(data):
        raise IndexError(end)
    value = data[start:end].decode("utf-16-le", "surrogatepass")
    return value, data[offset:end + 2]
