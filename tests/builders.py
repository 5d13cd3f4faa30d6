"""
Binary XML builders for tests.

Encodes chunks directly with struct so fixtures do not depend on the writer
under test.
"""

import struct

RES_STRING_POOL_TYPE = 0x0001
RES_XML_TYPE = 0x0003
START_NAMESPACE = 0x0100
END_NAMESPACE = 0x0101
START_ELEMENT = 0x0102
END_ELEMENT = 0x0103
RESOURCE_MAP = 0x0180

UTF8_FLAG = 1 << 8
SORTED_FLAG = 1 << 0

TYPE_REFERENCE = 0x01
TYPE_STRING = 0x03
TYPE_INT_DEC = 0x10
TYPE_INT_BOOLEAN = 0x12

ANDROID_NS = "http://schemas.android.com/apk/res/android"


def _len8(n):
    if n > 0x7F:
        return bytes([(n >> 8) | 0x80, n & 0xFF])
    return bytes([n])


def pool_entry_utf8(s):
    data = s.encode("utf-8")
    units = len(s.encode("utf-16-le")) // 2
    return _len8(units) + _len8(len(data)) + data + b"\x00"


def pool_entry_utf16(s):
    data = s.encode("utf-16-le")
    return struct.pack("<H", len(data) // 2) + data + b"\x00\x00"


def string_pool_chunk(strings, utf8=True, style_offsets=(), style_data=b"", sorted_pool=False):
    encode = pool_entry_utf8 if utf8 else pool_entry_utf16
    entries = [encode(s) for s in strings]
    offsets = []
    pos = 0
    for e in entries:
        offsets.append(pos)
        pos += len(e)
    data = b"".join(entries)
    data += b"\x00" * (-len(data) % 4)

    count = len(strings)
    style_count = len(style_offsets)
    strings_start = 28 + 4 * (count + style_count)
    styles_start = strings_start + len(data) if style_count else 0
    size = strings_start + len(data) + len(style_data)
    flags = (UTF8_FLAG if utf8 else 0) | (SORTED_FLAG if sorted_pool else 0)

    return (
        struct.pack("<HHI5I", RES_STRING_POOL_TYPE, 28, size, count, style_count, flags, strings_start, styles_start)
        + struct.pack(f"<{count}I", *offsets)
        + struct.pack(f"<{style_count}I", *style_offsets)
        + data
        + style_data
    )


def start_element_chunk(name, attrs, ns=-1, line=1):
    """attrs: (namespace, name, raw_value, data_type, data) tuples."""
    header = struct.pack("<Ii", line, -1)
    ext = struct.pack("<iiHHHHHH", ns, name, 20, 20, len(attrs), 0, 0, 0)
    body = b"".join(
        struct.pack("<iiiHBBI", a_ns, a_name, raw, 8, 0, data_type, data)
        for a_ns, a_name, raw, data_type, data in attrs
    )
    return struct.pack("<HHI", START_ELEMENT, 16, 16 + 20 + len(body)) + header + ext + body


def end_element_chunk(name, ns=-1, line=1):
    return struct.pack("<HHI", END_ELEMENT, 16, 24) + struct.pack("<Iiii", line, -1, ns, name)


def namespace_chunk(chunk_type, prefix, uri):
    return struct.pack("<HHI", chunk_type, 16, 24) + struct.pack("<Iiii", 1, -1, prefix, uri)


def resource_map_chunk(ids):
    return struct.pack("<HHI", RESOURCE_MAP, 8, 8 + 4 * len(ids)) + struct.pack(f"<{len(ids)}I", *ids)


def document(chunks):
    body = b"".join(chunks)
    return struct.pack("<HHI", RES_XML_TYPE, 8, 8 + len(body)) + body


class ManifestBuilder:
    """
    Assembles a flat manifest document.

        raw = (ManifestBuilder()
               .element("manifest", [("package", "com.a")])
               .element("application", [("label", (TYPE_REFERENCE, 0x7F0B0001))])
               .build())

    A str value becomes a STRING attribute; a (data_type, data) tuple becomes
    a typed attribute with raw_value -1. Strings are deduplicated like aapt does.
    """

    def __init__(self, utf8=True):
        self.utf8 = utf8
        self.strings = []
        self.body = []
        self.prefix = self.string("android")
        self.uri = self.string(ANDROID_NS)

    def string(self, s):
        if s in self.strings:
            return self.strings.index(s)
        self.strings.append(s)
        return len(self.strings) - 1

    def element(self, tag, attrs=()):
        name = self.string(tag)
        encoded = []
        for attr_name, value in attrs:
            a_name = self.string(attr_name)
            if isinstance(value, str):
                index = self.string(value)
                encoded.append((self.uri, a_name, index, TYPE_STRING, index))
            else:
                data_type, data = value
                encoded.append((self.uri, a_name, -1, data_type, data))
        self.body.append(start_element_chunk(name, encoded))
        self.body.append(end_element_chunk(name))
        return self

    def build(self):
        chunks = [
            string_pool_chunk(self.strings, utf8=self.utf8),
            resource_map_chunk([0x0101021B]),
            namespace_chunk(START_NAMESPACE, self.prefix, self.uri),
            *self.body,
            namespace_chunk(END_NAMESPACE, self.prefix, self.uri),
        ]
        return document(chunks)


def attr_value(doc, tag, attr):
    """Resolved value of the first tag@attr: a string for STRING values, else (data_type, data)."""
    pool = doc.string_pool
    for element in doc.elements:
        if pool.get(element.name) != tag:
            continue
        for a in element.attributes:
            if pool.get(a.name) == attr:
                if a.typed_value.data_type == TYPE_STRING:
                    return pool[a.typed_value.data]
                return (a.typed_value.data_type, a.typed_value.data)
    return None


def all_attr_values(doc, tag, attr):
    pool = doc.string_pool
    values = []
    for element in doc.elements:
        if pool.get(element.name) != tag:
            continue
        for a in element.attributes:
            if pool.get(a.name) == attr and a.typed_value.data_type == TYPE_STRING:
                values.append(pool[a.typed_value.data])
    return values
