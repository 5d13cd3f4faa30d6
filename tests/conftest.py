import pytest

from builders import TYPE_INT_BOOLEAN, TYPE_REFERENCE, ManifestBuilder


@pytest.fixture
def scenario_manifest():
    """manifest[com.a], application[label=ref], two providers, one activity."""
    return (
        ManifestBuilder()
        .element("manifest", [("versionCode", (0x10, 7)), ("package", "com.a")])
        .element("application", [("label", (TYPE_REFERENCE, 0x7F0B0001)), ("debuggable", (TYPE_INT_BOOLEAN, 0xFFFFFFFF))])
        .element("activity", [("name", "com.a.MainActivity"), ("label", (TYPE_REFERENCE, 0x7F0B0001))])
        .element("provider", [("name", "androidx.core.content.FileProvider"), ("authorities", "com.a.p1")])
        .element("provider", [("authorities", "com.a.p2")])
        .build()
    )


@pytest.fixture
def string_label_manifest():
    return (
        ManifestBuilder()
        .element("manifest", [("package", "com.old.app")])
        .element("application", [("label", "Old Name")])
        .build()
    )
