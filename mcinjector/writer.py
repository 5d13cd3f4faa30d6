"""
Manifest Writer - Serializes a ChunkDocument back to binary XML.

Chunk sizes are recomputed on the way out. An unmodified string pool is
written from its original bytes; a modified one is re-encoded, reusing the
original encoding of every slot that was not touched.
"""

from __future__ import annotations

import struct
from pathlib import Path

from mcinjector.document import ChunkDocument, RawChunk, StringPool, XmlStartElement
from mcinjector.errors import ManifestFormatError
from mcinjector.spec import (
    CHUNK_HEADER_SIZE,
    MAX_UTF16_LENGTH,
    MAX_UTF8_LENGTH,
    RES_STRING_POOL_TYPE,
    RES_XML_START_ELEMENT_TYPE,
    RES_XML_TYPE,
    STRING_POOL_HEADER_SIZE,
)


class ManifestWriter:
    """Serialize ChunkDocument objects to binary XML bytes."""

    @classmethod
    def serialize(cls, doc: ChunkDocument) -> bytes:
        body = b"".join(cls.encode_chunk(chunk) for chunk in doc.chunks)
        header_size = CHUNK_HEADER_SIZE + len(doc.header_extra)
        header = struct.pack("<HHI", RES_XML_TYPE, header_size, header_size + len(body))
        return header + doc.header_extra + body + doc.trailer

    @classmethod
    def write(cls, doc: ChunkDocument, path: str | Path) -> int:
        """Write to disk. Returns bytes written."""
        data = cls.serialize(doc)
        with open(path, "wb") as f:
            f.write(data)
        return len(data)

    @classmethod
    def encode_chunk(cls, chunk) -> bytes:
        if isinstance(chunk, StringPool):
            return cls.encode_string_pool(chunk)
        if isinstance(chunk, XmlStartElement):
            return cls.encode_start_element(chunk)
        if isinstance(chunk, RawChunk):
            return chunk.data
        raise TypeError(f"Cannot serialize chunk of type {type(chunk).__name__}")

    @staticmethod
    def encode_start_element(element: XmlStartElement) -> bytes:
        ext = struct.pack(
            "<iiHHHHHH",
            element.namespace,
            element.name,
            element.attribute_start,
            element.attribute_size,
            len(element.attributes),
            element.id_index,
            element.class_index,
            element.style_index,
        )
        attrs = b"".join(
            struct.pack(
                "<iiiHBBI",
                a.namespace,
                a.name,
                a.raw_value,
                a.typed_value.size,
                a.typed_value.res0,
                a.typed_value.data_type,
                a.typed_value.data,
            ) + a.extra
            for a in element.attributes
        )
        body = element.header + ext + element.ext_padding + attrs + element.trailer
        header_size = CHUNK_HEADER_SIZE + len(element.header)
        return struct.pack("<HHI", RES_XML_START_ELEMENT_TYPE, header_size, CHUNK_HEADER_SIZE + len(body)) + body

    @staticmethod
    def encode_string_pool(pool: StringPool) -> bytes:
        if pool.raw is not None:
            return pool.raw

        encode = encode_utf8 if pool.is_utf8 else encode_utf16
        entries = []
        for index, value in enumerate(pool):
            entry = pool.encoded_entry(index)
            entries.append(entry if entry is not None else encode(value))

        offsets = []
        position = 0
        for entry in entries:
            offsets.append(position)
            position += len(entry)
        string_data = b"".join(entries)
        string_data += b"\x00" * (-len(string_data) % 4)

        string_count = len(entries)
        style_count = len(pool.style_offsets)
        header_size = STRING_POOL_HEADER_SIZE + len(pool.header_extra)
        strings_start = header_size + 4 * (string_count + style_count)
        styles_start = strings_start + len(string_data) if style_count else 0
        size = strings_start + len(string_data) + (len(pool.style_data) if style_count else 0)

        out = [
            struct.pack(
                "<HHI5I",
                RES_STRING_POOL_TYPE,
                header_size,
                size,
                string_count,
                style_count,
                pool.flags,
                strings_start,
                styles_start,
            ),
            pool.header_extra,
            struct.pack(f"<{string_count}I", *offsets),
            struct.pack(f"<{style_count}I", *pool.style_offsets),
            string_data,
        ]
        if style_count:
            out.append(pool.style_data)
        return b"".join(out)


# =============================================================================
# String encoding
# =============================================================================

def _length8(n: int) -> bytes:
    if n > 0x7F:
        return bytes([(n >> 8) | 0x80, n & 0xFF])
    return bytes([n])


def encode_utf8(value: str) -> bytes:
    """Pool entry for a UTF-8 pool: UTF-16 length, byte length, bytes, NUL."""
    payload = value.encode("utf-8", "surrogatepass")
    units = len(value.encode("utf-16-le", "surrogatepass")) // 2
    if units > MAX_UTF8_LENGTH or len(payload) > MAX_UTF8_LENGTH:
        raise ManifestFormatError(
            f"String of {len(payload)} bytes is too long for a UTF-8 string pool (max {MAX_UTF8_LENGTH})"
        )
    return _length8(units) + _length8(len(payload)) + payload + b"\x00"


def encode_utf16(value: str) -> bytes:
    """Pool entry for a UTF-16 pool: unit count, UTF-16LE units, NUL unit."""
    payload = value.encode("utf-16-le", "surrogatepass")
    units = len(payload) // 2
    if units > MAX_UTF16_LENGTH:
        raise ManifestFormatError(f"String of {units} units is too long for a UTF-16 string pool")
    if units > 0x7FFF:
        prefix = struct.pack("<HH", (units >> 16) | 0x8000, units & 0xFFFF)
    else:
        prefix = struct.pack("<H", units)
    return prefix + payload + b"\x00\x00"
