"""
Command-line interface for natives.

Usage:
    python -m natives <command> [options]

Commands:
    map-name    Print the platform filename for a library name
    crc         Print the CRC fingerprint of a resource
    extract     Extract a resource to a directory or the extraction cache
    load        Extract and link a library, then print where it came from
    info        Show the platform and candidate extraction directories
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import LoaderConfig
from .errors import NativesError
from .loader import SharedLibraryLoader


def _make_loader(args: argparse.Namespace) -> SharedLibraryLoader:
    config = LoaderConfig.load(
        args.config,
        archive=args.archive,
        library_path=args.library_path,
    )
    return SharedLibraryLoader(config=config)


def cmd_map_name(args: argparse.Namespace) -> int:
    """Print the mapped filename."""
    loader = _make_loader(args)
    print(loader.map_name(args.name))
    return 0


def cmd_crc(args: argparse.Namespace) -> int:
    """Print the fingerprint of a resource."""
    loader = _make_loader(args)
    print(loader.extraction.source_crc(args.source))
    return 0


def cmd_extract(args: argparse.Namespace) -> int:
    """Extract a resource and print the resulting path."""
    loader = _make_loader(args)
    if args.directory is not None:
        path = loader.extract_resource_to_directory(args.source, args.directory)
    else:
        path = loader.extract_file(args.source, args.dir_name)
    print(path)
    return 0


def cmd_load(args: argparse.Namespace) -> int:
    """Load a library and print the file it was linked from."""
    loader = _make_loader(args)
    path = loader.load(args.name, args.filename)
    if path is None:
        print(f"{args.name}: loaded by the platform")
    else:
        print(path)
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Show platform details and where extraction would be attempted."""
    loader = _make_loader(args)
    platform = loader.platform

    print(f"natives {__version__}")
    print(f"Platform:       {platform.description}")
    print(f"OS family:      {platform.os_family.value}")
    print(f"ARM:            {platform.is_arm} {platform.abi}".rstrip())
    print(f"Fallback root:  {platform.fallback_root or '-'}")
    print(f"Archive:        {loader.config.archive or '-'}")
    print(f"Library path:   {loader.config.library_path or '-'}")
    print("Candidates:")
    for candidate in loader.resolver.candidates('<crc>', '<file>'):
        print(f"  {candidate.parent}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="natives",
        description="Native shared library loader",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the filename 'yoga' maps to on this platform
  python -m natives map-name yoga

  # Extract from a natives archive into ./build
  python -m natives --archive natives.zip extract libyoga64.so -d build

  # Load a library and print its extracted location
  python -m natives -v load yoga
""",
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file (natives.toml)",
    )
    parser.add_argument(
        "--archive", "-a",
        type=Path,
        help="Read natives from this zip archive",
    )
    parser.add_argument(
        "--library-path", "-L",
        type=Path,
        help="Directory holding pre-installed libraries",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    map_parser = subparsers.add_parser("map-name", help="Print the platform filename")
    map_parser.add_argument("name", help="Platform independent library name")
    map_parser.set_defaults(func=cmd_map_name)

    crc_parser = subparsers.add_parser("crc", help="Print the CRC of a resource")
    crc_parser.add_argument("source", help="Resource path")
    crc_parser.set_defaults(func=cmd_crc)

    extract_parser = subparsers.add_parser("extract", help="Extract a resource")
    extract_parser.add_argument("source", help="Resource path")
    extract_parser.add_argument(
        "--directory", "-d",
        type=Path,
        help="Target directory (default: first writable cache location)",
    )
    extract_parser.add_argument(
        "--dir-name",
        help="Cache subdirectory name (default: the resource CRC)",
    )
    extract_parser.set_defaults(func=cmd_extract)

    load_parser = subparsers.add_parser("load", help="Extract and link a library")
    load_parser.add_argument("name", help="Platform independent library name")
    load_parser.add_argument(
        "--filename", "-f",
        help="Explicit library filename, bypassing name mapping",
    )
    load_parser.set_defaults(func=cmd_load)

    info_parser = subparsers.add_parser("info", help="Show platform information")
    info_parser.set_defaults(func=cmd_info)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except NativesError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
