"""
CLI Tests - Argument handling and exit codes.
"""

import zipfile

import pytest

from builders import attr_value
from mcinjector.cli import build_parser, main
from mcinjector.reader import ManifestReader


@pytest.fixture
def apk(tmp_path, scenario_manifest):
    path = tmp_path / "game.apk"
    with zipfile.ZipFile(path, "w") as z:
        z.writestr("AndroidManifest.xml", scenario_manifest)
    return path


class TestParser:

    def test_output_required(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["game.apk"])

    def test_flags(self):
        args = build_parser().parse_args(["game.apk", "-o", "out.apk", "-a", "Foo", "-p", "com.b", "-r"])
        assert args.appname == "Foo"
        assert args.pkgid == "com.b"
        assert args.remove_songs
        assert args.payload_dir is None


class TestMain:

    def test_success(self, apk, tmp_path):
        out = tmp_path / "out.apk"
        assert main([str(apk), "-o", str(out), "-p", "com.b", "-a", "Foo"]) == 0
        with zipfile.ZipFile(out) as z:
            doc = ManifestReader.parse(z.read("AndroidManifest.xml"))
        assert attr_value(doc, "manifest", "package") == "com.b"

    def test_existing_output(self, apk, tmp_path):
        out = tmp_path / "out.apk"
        out.write_bytes(b"")
        assert main([str(apk), "-o", str(out)]) == 1

    def test_missing_input(self, tmp_path):
        assert main([str(tmp_path / "nope.apk"), "-o", str(tmp_path / "out.apk")]) == 1

    def test_edit_error(self, tmp_path):
        src = tmp_path / "bad.apk"
        with zipfile.ZipFile(src, "w") as z:
            z.writestr("AndroidManifest.xml", b"<manifest/>")
        out = tmp_path / "out.apk"
        assert main([str(src), "-o", str(out), "-p", "com.b"]) == 1
        assert not out.exists()

    def test_not_a_zip(self, tmp_path):
        src = tmp_path / "bad.apk"
        src.write_bytes(b"not a zip")
        out = tmp_path / "out.apk"
        assert main([str(src), "-o", str(out)]) == 1
        assert not out.exists()
