"""
Manifest Editor - Rewrites attribute values of existing manifest elements.

    edit_manifest(raw, name="Foo", package="com.b")   # -> new bytes

Building blocks:
    find_element()          -> attributes of the first element with a tag name
    find_attribute()        -> attribute with a given name
    set_attribute_string()  -> give an attribute a new string value
    rewrite_prefixed()      -> swap an identifier prefix across many elements

The string pool is shared. A value that already is a string is rewritten in its
own slot, so every other attribute pointing at that slot changes too. A value
that is not a string gets a brand new slot, never a borrowed one.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from mcinjector.document import Chunk, StringPool, XmlAttribute, XmlStartElement
from mcinjector.errors import ManifestFormatError, MissingAttributeError, MissingElementError
from mcinjector.reader import ManifestReader
from mcinjector.spec import (
    ACTIVITY_TAG,
    APPLICATION_TAG,
    AUTHORITIES_ATTR,
    LABEL_ATTR,
    MANIFEST_TAG,
    PACKAGE_ATTR,
    PROVIDER_TAG,
    ResValueType,
)
from mcinjector.writer import ManifestWriter

logger = logging.getLogger(__name__)


# =============================================================================
# Element / attribute resolution
# =============================================================================

def find_elements(chunks: Iterable[Chunk], tag_name: str, pool: StringPool) -> Iterator[list[XmlAttribute]]:
    """Attribute lists of every element named `tag_name`, in document order."""
    for chunk in chunks:
        if isinstance(chunk, XmlStartElement) and pool.get(chunk.name) == tag_name:
            yield chunk.attributes


def find_element(chunks: Iterable[Chunk], tag_name: str, pool: StringPool) -> list[XmlAttribute] | None:
    """Attribute list of the first element named `tag_name` (case-sensitive), or None."""
    return next(find_elements(chunks, tag_name, pool), None)


def find_attribute(attrs: Iterable[XmlAttribute], attr_name: str, pool: StringPool) -> XmlAttribute | None:
    """First attribute whose name resolves to `attr_name`. Out-of-pool names never match."""
    for attr in attrs:
        if pool.get(attr.name) == attr_name:
            return attr
    return None


# =============================================================================
# Typed value rewriting
# =============================================================================

def set_attribute_string(attr: XmlAttribute, new_value: str, pool: StringPool) -> str | None:
    """
    Make `attr` hold the string `new_value`.

    String values are overwritten in their pool slot and the old string is
    returned; the pool does not grow. Any other kind (reference, boolean,
    integer, ...) is replaced by a string value pointing at a newly appended
    slot, and None is returned.

    Raises UnknownValueTypeError if the current data type byte is unknown.
    """
    kind = attr.typed_value.kind
    if kind == ResValueType.STRING:
        index = attr.typed_value.data
        if pool.get(index) is None:
            raise ManifestFormatError(
                f"String value points at pool index {index}, but the pool holds {len(pool)} strings"
            )
        old = pool.replace(index, new_value)
        logger.debug("Rewrote pool slot %d: %r -> %r", index, old, new_value)
        return old

    index = pool.append(new_value)
    attr.set_string_index(index)
    logger.debug("Converted %s value to string slot %d: %r", kind.name, index, new_value)
    return None


def edit_attr_in_element(
    chunks: Iterable[Chunk],
    element: str,
    attribute: str,
    new_value: str,
    pool: StringPool,
) -> str | None:
    """
    Rewrite `element@attribute` of the first matching element.

    Raises MissingElementError / MissingAttributeError when either is absent.
    """
    attrs = find_element(chunks, element, pool)
    if attrs is None:
        raise MissingElementError(element)
    attr = find_attribute(attrs, attribute, pool)
    if attr is None:
        raise MissingAttributeError(element, attribute)
    return set_attribute_string(attr, new_value, pool)


# =============================================================================
# Cross-reference fixup
# =============================================================================

def rewrite_prefixed(
    chunks: Iterable[Chunk],
    element_tag: str,
    attr_name: str,
    old_prefix: str,
    new_prefix: str,
    pool: StringPool,
    exclude: Iterable[int] = (),
) -> int:
    """
    Swap `old_prefix` for `new_prefix` in `attr_name` of every `element_tag`.

    Only string values that start with `old_prefix` are touched; the rest of
    the string is kept. Elements without the attribute, or with a non-string
    value, are skipped. Each pool slot is rewritten at most once, and slots in
    `exclude` (already holding their final value) are left alone. Returns the
    number of strings rewritten.
    """
    skip = set(exclude)
    rewritten = 0
    for attrs in find_elements(chunks, element_tag, pool):
        attr = find_attribute(attrs, attr_name, pool)
        if attr is None or not attr.typed_value.is_string:
            continue
        index = attr.typed_value.data
        if index in skip:
            continue
        current = pool.get(index)
        if current is None or not current.startswith(old_prefix):
            continue
        pool.replace(index, new_prefix + current[len(old_prefix):])
        skip.add(index)
        rewritten += 1
    logger.debug("Rewrote %d %s@%s value(s) from %r to %r", rewritten, element_tag, attr_name, old_prefix, new_prefix)
    return rewritten


# =============================================================================
# Orchestration
# =============================================================================

def edit_manifest(manifest: bytes, name: str | None = None, package: str | None = None) -> bytes:
    """
    Rename an app inside a binary AndroidManifest.xml.

        patched = edit_manifest(raw, name="My App", package="com.example.mine")

    package: rewrites manifest@package and every provider@authorities that
             starts with the old package.
    name:    rewrites application@label and, if present, the first
             activity@label.

    The input is never modified. Any error aborts the whole edit.
    """
    doc = ManifestReader.parse(manifest)
    pool = doc.string_pool
    if pool is None:
        raise ManifestFormatError("First chunk of the manifest is not a string pool")
    chunks = doc.chunks[1:]

    if package is not None:
        old_package = edit_attr_in_element(chunks, MANIFEST_TAG, PACKAGE_ATTR, package, pool)
        if old_package is None:
            raise ManifestFormatError(
                f"{MANIFEST_TAG}@{PACKAGE_ATTR} is not a string, cannot derive the old package name"
            )
        logger.info("Package name %s -> %s", old_package, package)
        # aapt may share the package slot with an authority equal to it
        package_attr = find_attribute(find_element(chunks, MANIFEST_TAG, pool), PACKAGE_ATTR, pool)
        rewrite_prefixed(
            chunks, PROVIDER_TAG, AUTHORITIES_ATTR, old_package, package, pool,
            exclude={package_attr.typed_value.data},
        )

    if name is not None:
        app_attrs = find_element(chunks, APPLICATION_TAG, pool)
        if app_attrs is None:
            raise MissingElementError(APPLICATION_TAG)
        label = find_attribute(app_attrs, LABEL_ATTR, pool)
        if label is None:
            # Label lives only in resources.arsc for some builds
            logger.warning("%s has no %s attribute, app name left unchanged", APPLICATION_TAG, LABEL_ATTR)
        else:
            set_attribute_string(label, name, pool)

        activity_attrs = find_element(chunks, ACTIVITY_TAG, pool)
        activity_label = find_attribute(activity_attrs, LABEL_ATTR, pool) if activity_attrs is not None else None
        if activity_label is not None:
            set_attribute_string(activity_label, name, pool)
        else:
            logger.debug("No %s@%s to rename", ACTIVITY_TAG, LABEL_ATTR)

    return ManifestWriter.serialize(doc)
