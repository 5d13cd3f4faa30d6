"""
Android Binary XML (AXML) Format
================================

Layout:
    ResChunk_header (type=0x0003 XML)   <- Container: type u16, header size u16, size u32
    ResStringPool (type=0x0001)         <- Always the first child: every name/value index points here
        string_count u32
        style_count u32
        flags u32                       <- SORTED (1 << 0), UTF8 (1 << 8)
        strings_start u32               <- Relative to the pool chunk start
        styles_start u32
        <string offsets>                <- u32 each, relative to strings_start
        <style offsets>
        <string data>                   <- Length-prefixed, NUL-terminated, padded to 4 bytes
        <style data>
    ResXMLTree_resourceMap (0x0180)     <- Resource ids for the first N pool strings
    ResXMLTree_node (0x0100..0x0104)    <- Namespace start/end, element start/end, CDATA
        line_number u32
        comment u32
        <extension>                     <- Start element: ns, name, attribute layout, attributes

Attribute (20 bytes):
    namespace i32, name i32, raw_value i32, Res_value {size u16, res0 u8, data_type u8, data u32}

Design Decisions:
    - The pool is shared: many attributes may point at the same index
    - Strings are only appended, never removed, so existing indices stay valid
    - Unknown chunks are carried as raw bytes and written back untouched
"""

from __future__ import annotations

from enum import IntEnum

from mcinjector.errors import UnknownValueTypeError

# Chunk types
RES_NULL_TYPE = 0x0000
RES_STRING_POOL_TYPE = 0x0001
RES_XML_TYPE = 0x0003

RES_XML_START_NAMESPACE_TYPE = 0x0100
RES_XML_END_NAMESPACE_TYPE = 0x0101
RES_XML_START_ELEMENT_TYPE = 0x0102
RES_XML_END_ELEMENT_TYPE = 0x0103
RES_XML_CDATA_TYPE = 0x0104
RES_XML_RESOURCE_MAP_TYPE = 0x0180

# Sizes (bytes)
CHUNK_HEADER_SIZE = 8
STRING_POOL_HEADER_SIZE = 28
XML_NODE_HEADER_SIZE = 16
START_ELEMENT_EXT_SIZE = 20
ATTRIBUTE_SIZE = 20
RES_VALUE_SIZE = 8

# String pool flags
SORTED_FLAG = 1 << 0
UTF8_FLAG = 1 << 8

# Longest string each encoding can length-prefix (in UTF-16 units / bytes)
MAX_UTF8_LENGTH = 0x7FFF
MAX_UTF16_LENGTH = 0x7FFFFFFF


class ResValueType(IntEnum):
    """Discriminant of a Res_value: selects how `data` is interpreted."""

    NULL = 0x00
    REFERENCE = 0x01
    ATTRIBUTE = 0x02
    STRING = 0x03
    FLOAT = 0x04
    DIMENSION = 0x05
    FRACTION = 0x06
    DYNAMIC_REFERENCE = 0x07
    DYNAMIC_ATTRIBUTE = 0x08
    INT_DEC = 0x10
    INT_HEX = 0x11
    INT_BOOLEAN = 0x12
    INT_COLOR_ARGB8 = 0x1C
    INT_COLOR_RGB8 = 0x1D
    INT_COLOR_ARGB4 = 0x1E
    INT_COLOR_RGB4 = 0x1F

    @classmethod
    def from_byte(cls, value: int) -> ResValueType:
        try:
            return cls(value)
        except ValueError:
            raise UnknownValueTypeError(value) from None


# Manifest elements and attributes the editor touches
MANIFEST_TAG = "manifest"
APPLICATION_TAG = "application"
ACTIVITY_TAG = "activity"
PROVIDER_TAG = "provider"

PACKAGE_ATTR = "package"
LABEL_ATTR = "label"
AUTHORITIES_ATTR = "authorities"

# Archive layout
MANIFEST_ENTRY = "AndroidManifest.xml"
RESOURCE_TABLE_ENTRY = "resources.arsc"
MUSIC_PATH = "assets/assets/resource_packs/vanilla_music"
REDIRECTOR_LIBRARY = "libdraco_redirector.so"
GAME_LIBRARY = "libminecraftpe.so"
ZIP_ALIGNMENT = 4
ZIP_ALIGNMENT_EXTRA_ID = 0xD935  # Android zipalign extra field
