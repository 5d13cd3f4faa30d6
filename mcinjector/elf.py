"""
ELF Patch - Adds a DT_NEEDED entry to the game's native library.

Requires: LIEF (Library to Instrument Executable Formats) - pip install lief
"""

from __future__ import annotations

import logging
import tempfile
from enum import Enum
from pathlib import Path

import lief

from mcinjector.errors import McInjectorError, PayloadNotFoundError
from mcinjector.spec import GAME_LIBRARY

logger = logging.getLogger(__name__)


class LibraryArch(Enum):
    """Android ABIs the game ships, with the matching Rust target triple."""

    AARCH64 = ("arm64-v8a", "aarch64-linux-android")
    ARMV7A = ("armeabi-v7a", "armv7-linux-androideabi")
    X86 = ("x86", "i686-linux-android")
    X86_64 = ("x86_64", "x86_64-linux-android")

    @property
    def android_abi(self) -> str:
        return self.value[0]

    @property
    def rust_target(self) -> str:
        return self.value[1]

    @classmethod
    def from_entry_name(cls, name: str) -> LibraryArch | None:
        """Arch of `lib/<abi>/libminecraftpe.so`, None for any other entry."""
        for arch in cls:
            if name == f"lib/{arch.android_abi}/{GAME_LIBRARY}":
                return arch
        return None


def add_needed(library: bytes, needed: str) -> bytes:
    """
    Return a copy of the ELF `library` that also depends on `needed`.

    LIEF works on files, so the library goes through a temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmp:
        src = Path(tmp) / "input.so"
        dst = Path(tmp) / "output.so"
        src.write_bytes(library)

        binary = lief.ELF.parse(str(src))
        if binary is None:
            raise McInjectorError("LIEF failed to parse the library as ELF")

        if binary.has_library(needed):
            logger.info("%s already required, leaving imports unchanged", needed)
            return library

        binary.add_library(needed)
        binary.write(str(dst))
        return dst.read_bytes()


def payload_name(arch: LibraryArch) -> str:
    return f"libmcbe_r_{arch.rust_target}.so"


def redirector_payload(directory: str | Path, arch: LibraryArch) -> bytes:
    """Load the prebuilt redirector library for `arch` from a local directory."""
    path = Path(directory) / payload_name(arch)
    if not path.is_file():
        raise PayloadNotFoundError(f"No redirector library for {arch.android_abi}: {path} does not exist")
    return path.read_bytes()
