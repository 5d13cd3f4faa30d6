"""mcinjector - Binary AndroidManifest editor and Minecraft APK repackager."""

from mcinjector.document import ChunkDocument, ResValue, StringPool, XmlAttribute, XmlStartElement
from mcinjector.editor import (
    edit_attr_in_element,
    edit_manifest,
    find_attribute,
    find_element,
    rewrite_prefixed,
    set_attribute_string,
)
from mcinjector.errors import (
    ArchiveFormatError,
    ManifestFormatError,
    McInjectorError,
    MissingAttributeError,
    MissingElementError,
    UnknownValueTypeError,
)
from mcinjector.reader import ManifestReader
from mcinjector.spec import ResValueType
from mcinjector.writer import ManifestWriter

__version__ = "0.1.0"

__all__ = [
    "ArchiveFormatError",
    "ChunkDocument",
    "ManifestFormatError",
    "ManifestReader",
    "ManifestWriter",
    "McInjectorError",
    "MissingAttributeError",
    "MissingElementError",
    "ResValue",
    "ResValueType",
    "StringPool",
    "UnknownValueTypeError",
    "XmlAttribute",
    "XmlStartElement",
    "edit_attr_in_element",
    "edit_manifest",
    "find_attribute",
    "find_element",
    "rewrite_prefixed",
    "set_attribute_string",
]
