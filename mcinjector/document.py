"""
Chunk Tree Model - In-memory form of a binary XML document.

A document is a flat, ordered list of chunks. The string pool comes first and
everything else refers to it by index. Only start-element chunks are decoded
into fields; all other chunks are carried as raw bytes.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Iterator, Union

from mcinjector.spec import (
    RES_VALUE_SIZE,
    SORTED_FLAG,
    UTF8_FLAG,
    ResValueType,
)


class StringPool:
    """
    Shared, index-addressed string table.

    Append-only: a slot's string may be replaced but a slot is never removed
    or moved, so every index held by another chunk stays valid.

        pool = StringPool(["manifest", "package"])
        old = pool.replace(1, "com.example")
        idx = pool.append("Label")   # == 2
    """

    def __init__(
        self,
        strings: list[str] | None = None,
        flags: int = UTF8_FLAG,
        style_offsets: list[int] | None = None,
        style_data: bytes = b"",
        header_extra: bytes = b"",
        encoded: list[bytes | None] | None = None,
        raw: bytes | None = None,
    ) -> None:
        self._strings: list[str] = list(strings or [])
        # Original encoded bytes per slot (length prefix + data + terminator)
        self._encoded: list[bytes | None] = list(encoded) if encoded is not None else [None] * len(self._strings)
        self.flags = flags
        self.style_offsets: list[int] = list(style_offsets or [])
        self.style_data = style_data
        self.header_extra = header_extra
        self.raw = raw  # Original chunk bytes; dropped on first mutation

    @property
    def is_utf8(self) -> bool:
        return bool(self.flags & UTF8_FLAG)

    @property
    def modified(self) -> bool:
        return self.raw is None

    def __len__(self) -> int:
        return len(self._strings)

    def __getitem__(self, index: int) -> str:
        return self._strings[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self._strings)

    def get(self, index: int) -> str | None:
        """String at `index`, or None for a negative or out-of-range index."""
        if 0 <= index < len(self._strings):
            return self._strings[index]
        return None

    def encoded_entry(self, index: int) -> bytes | None:
        """Original encoding of an untouched slot, None once replaced or appended."""
        return self._encoded[index]

    def replace(self, index: int, value: str) -> str:
        """Overwrite the string in an existing slot. Returns the previous string."""
        if not 0 <= index < len(self._strings):
            raise IndexError(f"String pool index {index} out of range (size {len(self._strings)})")
        old = self._strings[index]
        self._strings[index] = value
        self._encoded[index] = None
        self._touch()
        return old

    def append(self, value: str) -> int:
        """Add a string in a new slot at the end. Returns its index."""
        index = len(self._strings)
        self._strings.append(value)
        self._encoded.append(None)
        self._touch()
        return index

    def _touch(self) -> None:
        self.raw = None
        # Appending or replacing breaks any sort order the pool declared
        self.flags &= ~SORTED_FLAG

    def __repr__(self) -> str:
        return f"StringPool(strings={len(self._strings)}, styles={len(self.style_offsets)}, utf8={self.is_utf8})"


@dataclass
class ResValue:
    """Typed value: `data_type` selects how `data` is read."""

    size: int = RES_VALUE_SIZE
    res0: int = 0
    data_type: int = ResValueType.NULL
    data: int = 0

    @property
    def kind(self) -> ResValueType:
        """Decoded data type. Raises UnknownValueTypeError for unknown bytes."""
        return ResValueType.from_byte(self.data_type)

    @property
    def is_string(self) -> bool:
        return self.data_type == ResValueType.STRING


@dataclass
class XmlAttribute:
    """
    One attribute of a start element.

    Invariant: raw_value == typed_value.data whenever the editor has turned the
    value into a string; set_string_index is the only place that does so.
    """

    namespace: int
    name: int
    raw_value: int
    typed_value: ResValue
    extra: bytes = b""  # Bytes past the standard 20 when attribute_size is larger

    def set_string_index(self, index: int) -> None:
        self.typed_value = ResValue(size=RES_VALUE_SIZE, res0=0, data_type=ResValueType.STRING, data=index)
        self.raw_value = index


@dataclass
class XmlStartElement:
    """Start-element chunk with its attributes decoded."""

    header: bytes  # Node header after the common chunk header (line number, comment, ...)
    namespace: int
    name: int
    attribute_start: int
    attribute_size: int
    id_index: int
    class_index: int
    style_index: int
    attributes: list[XmlAttribute] = field(default_factory=list)
    ext_padding: bytes = b""  # Between the fixed extension fields and the first attribute
    trailer: bytes = b""  # After the last attribute, up to the chunk end

    @property
    def line_number(self) -> int:
        if len(self.header) < 4:
            return 0
        return struct.unpack_from("<I", self.header, 0)[0]


@dataclass
class RawChunk:
    """Any chunk the editor does not look inside, kept byte for byte."""

    type: int
    data: bytes


Chunk = Union[StringPool, XmlStartElement, RawChunk]


@dataclass
class ChunkDocument:
    """A parsed binary XML document."""

    chunks: list[Chunk] = field(default_factory=list)
    header_extra: bytes = b""  # Container header bytes past the common 8
    trailer: bytes = b""  # Bytes after the container's declared size

    @property
    def string_pool(self) -> StringPool | None:
        """The leading string pool, or None if the first chunk is something else."""
        if self.chunks and isinstance(self.chunks[0], StringPool):
            return self.chunks[0]
        return None

    @property
    def elements(self) -> list[XmlStartElement]:
        return [c for c in self.chunks if isinstance(c, XmlStartElement)]

    def element_names(self) -> list[str]:
        pool = self.string_pool
        if pool is None:
            return []
        return [pool.get(e.name) or "" for e in self.elements]

    @classmethod
    def from_bytes(cls, data: bytes) -> ChunkDocument:
        from mcinjector.reader import ManifestReader
        return ManifestReader.parse(data)

    def to_bytes(self) -> bytes:
        from mcinjector.writer import ManifestWriter
        return ManifestWriter.serialize(self)

    def __repr__(self) -> str:
        pool = self.string_pool
        strings = len(pool) if pool is not None else 0
        return f"ChunkDocument(chunks={len(self.chunks)}, elements={len(self.elements)}, strings={strings})"
