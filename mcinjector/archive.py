"""
APK Rewrite - Copies an APK entry by entry, patching the few that matter.

    AndroidManifest.xml        -> app / package name edit
    resources.arsc             -> stored, 4-byte aligned
    lib/<abi>/libminecraftpe.so -> gains a DT_NEEDED on the redirector, which is added next to it
    META-INF signatures        -> dropped (the output must be re-signed)
    everything else            -> copied

Entries are processed one at a time, in archive order.
"""

from __future__ import annotations

import logging
import struct
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from mcinjector.editor import edit_manifest
from mcinjector.elf import LibraryArch, add_needed, redirector_payload
from mcinjector.errors import ArchiveFormatError
from mcinjector.spec import (
    MANIFEST_ENTRY,
    MUSIC_PATH,
    REDIRECTOR_LIBRARY,
    RESOURCE_TABLE_ENTRY,
    ZIP_ALIGNMENT,
    ZIP_ALIGNMENT_EXTRA_ID,
)

logger = logging.getLogger(__name__)

# Local file header size before the file name
_LOCAL_HEADER_SIZE = 30
_PAGE_ALIGNMENT = 4096


@dataclass
class PatchOptions:
    app_name: str | None = None
    package: str | None = None
    remove_songs: bool = False
    payload_dir: Path | None = None  # Holds libmcbe_r_<target>.so per architecture

    @property
    def renames(self) -> bool:
        return self.app_name is not None or self.package is not None


@dataclass
class RewriteReport:
    copied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    edited: list[str] = field(default_factory=list)
    patched: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)


def skip_entry(name: str, remove_songs: bool) -> bool:
    """Entries that must not reach the output archive."""
    if remove_songs and name.startswith(MUSIC_PATH):
        return True
    # A stale v1 signature makes the installer reject the APK
    if name.startswith("META-INF/") and (name.endswith(".SF") or name.endswith("RSA")):
        return True
    # Dropped so an already patched APK can be patched again
    return name.endswith(REDIRECTOR_LIBRARY)


def rewrite_apk(source: str | Path, output: str | Path, options: PatchOptions) -> RewriteReport:
    """
    Write a patched copy of `source` to `output`.

    Refuses to overwrite `output`. On any error the partial output is removed.
    """
    output = Path(output)
    report = RewriteReport()

    try:
        zin = zipfile.ZipFile(source, "r")
    except zipfile.BadZipFile as e:
        raise ArchiveFormatError(f"{source} is not a zip archive: {e}") from e

    with zin:
        zout = zipfile.ZipFile(output, "x")
        try:
            with zout:
                zout.comment = zin.comment
                for info in zin.infolist():
                    _rewrite_entry(zin, zout, info, options, report)
        except zipfile.BadZipFile as e:
            output.unlink(missing_ok=True)
            raise ArchiveFormatError(f"{source} is corrupt: {e}") from e
        except Exception:
            output.unlink(missing_ok=True)
            raise

    logger.info(
        "Rewrote %s: %d copied, %d edited, %d patched, %d added, %d skipped",
        output, len(report.copied), len(report.edited), len(report.patched),
        len(report.added), len(report.skipped),
    )
    return report


def _rewrite_entry(
    zin: zipfile.ZipFile,
    zout: zipfile.ZipFile,
    info: zipfile.ZipInfo,
    options: PatchOptions,
    report: RewriteReport,
) -> None:
    name = info.filename
    if skip_entry(name, options.remove_songs):
        logger.debug("Skipping %s", name)
        report.skipped.append(name)
        return

    data = zin.read(info)

    if name == MANIFEST_ENTRY:
        if not options.renames:
            logger.info("Leaving app and package name the same")
            _copy(zout, info, data)
            report.copied.append(name)
            return
        logger.info("Editing app and package name")
        patched = edit_manifest(data, options.app_name, options.package)
        zout.writestr(_new_info(info, zipfile.ZIP_DEFLATED), patched)
        report.edited.append(name)
        return

    if name == RESOURCE_TABLE_ENTRY:
        write_aligned(zout, _new_info(info, zipfile.ZIP_STORED), data, ZIP_ALIGNMENT)
        report.copied.append(name)
        return

    arch = LibraryArch.from_entry_name(name)
    if arch is None or options.payload_dir is None:
        _copy(zout, info, data)
        report.copied.append(name)
        return

    logger.info("Patching minecraft %s", arch.android_abi)
    payload = redirector_payload(options.payload_dir, arch)
    patched = add_needed(data, REDIRECTOR_LIBRARY)
    _write_library(zout, _new_info(info, info.compress_type), patched)
    report.patched.append(name)

    redirector = f"lib/{arch.android_abi}/{REDIRECTOR_LIBRARY}"
    _write_library(zout, _new_info(info, info.compress_type, filename=redirector), payload)
    report.added.append(redirector)


def _copy(zout: zipfile.ZipFile, info: zipfile.ZipInfo, data: bytes) -> None:
    # Preserve per-entry compression type
    zout.writestr(info, data, compress_type=info.compress_type)


def _new_info(info: zipfile.ZipInfo, compress_type: int, filename: str | None = None) -> zipfile.ZipInfo:
    entry = zipfile.ZipInfo(filename or info.filename, date_time=info.date_time)
    entry.compress_type = compress_type
    entry.external_attr = info.external_attr
    return entry


def _write_library(zout: zipfile.ZipFile, entry: zipfile.ZipInfo, data: bytes) -> None:
    # Stored native libraries are mapped straight from the APK and need page alignment
    if entry.compress_type == zipfile.ZIP_STORED:
        write_aligned(zout, entry, data, _PAGE_ALIGNMENT)
    else:
        zout.writestr(entry, data)


def write_aligned(zout: zipfile.ZipFile, entry: zipfile.ZipInfo, data: bytes, alignment: int) -> None:
    """
    Write a STORED entry whose data starts on an `alignment` boundary.

    Padding goes into an Android alignment extra field (0xD935):
        id u16, size u16, alignment u16, zero padding
    """
    entry.compress_type = zipfile.ZIP_STORED
    name_size = len(entry.filename.encode("utf-8"))
    base = zout.start_dir + _LOCAL_HEADER_SIZE + name_size + 6
    pad = -base % alignment
    entry.extra = struct.pack("<HHH", ZIP_ALIGNMENT_EXTRA_ID, 2 + pad, alignment) + b"\x00" * pad
    zout.writestr(entry, data)
