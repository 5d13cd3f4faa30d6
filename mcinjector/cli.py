"""
mcinjector command line.

    mcinjector game.apk -o patched.apk -a "My Game" -p com.example.mygame
    mcinjector game.apk -o patched.apk --payload-dir ./redirector -r

The output is unsigned; sign it (e.g. with apksigner) before installing.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from mcinjector import __version__
from mcinjector.archive import PatchOptions, rewrite_apk
from mcinjector.errors import McInjectorError

logger = logging.getLogger("mcinjector")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcinjector",
        description="Rename a Minecraft APK and inject the shader redirector library",
    )
    parser.add_argument("apk", type=Path, help="Apk file to patch")
    parser.add_argument("-a", "--appname", help="New app name")
    parser.add_argument("-p", "--pkgid", help="New package id")
    parser.add_argument("-r", "--remove-songs", action="store_true", help="Remove songs from final apk")
    parser.add_argument("-o", "--output", type=Path, required=True, help="Output path")
    parser.add_argument(
        "--payload-dir",
        type=Path,
        help="Directory holding libmcbe_r_<target>.so; native libraries are left alone without it",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    options = PatchOptions(
        app_name=args.appname,
        package=args.pkgid,
        remove_songs=args.remove_songs,
        payload_dir=args.payload_dir,
    )
    logger.info("Make sure you use shaders for the version of apk you are patching")
    try:
        rewrite_apk(args.apk, args.output, options)
    except FileExistsError:
        logger.error("Output file already exists: %s", args.output)
        return 1
    except (McInjectorError, OSError) as e:
        logger.error("%s", e)
        return 1

    logger.info("Done! Sign %s before installing it", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
