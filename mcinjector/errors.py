"""
Errors raised while reading, editing and repackaging binary manifests.

Every error carries the element/attribute or value it was about, so callers
can report it without looking at the binary buffer.
"""

from __future__ import annotations


class McInjectorError(Exception):
    """Base class for everything this package raises on purpose."""


class ManifestFormatError(McInjectorError, ValueError):
    """The buffer is not a chunk document this editor understands."""


class UnknownValueTypeError(ManifestFormatError):
    """A typed value under edit has a data type byte with no known meaning."""

    def __init__(self, data_type: int) -> None:
        self.data_type = data_type
        super().__init__(f"Unknown typed value data type: 0x{data_type:02x}")


class MissingElementError(McInjectorError, LookupError):
    """A required element is not in the document."""

    def __init__(self, element: str) -> None:
        self.element = element
        super().__init__(f"Xml element is missing: {element}")


class MissingAttributeError(McInjectorError, LookupError):
    """A required attribute is not on its element."""

    def __init__(self, element: str, attribute: str) -> None:
        self.element = element
        self.attribute = attribute
        super().__init__(f"Attribute {attribute} not found in element {element}")


class PayloadNotFoundError(McInjectorError, FileNotFoundError):
    """The redirector library for an architecture is not in the payload directory."""


class ArchiveFormatError(McInjectorError, ValueError):
    """The input APK is not a readable zip archive."""
