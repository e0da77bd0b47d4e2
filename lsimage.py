"""
fsimage-ls - ls-style listing of a namespace snapshot export.

Reads a JSON-lines snapshot export and writes one line per inode, in the
order the inodes are stored, optionally split across several output parts.
"""
import argparse
import logging
import math
import sys
from pathlib import Path
from typing import Optional

from core.settings import settings
from services.ls_visitor import LsImageVisitor
from services.snapshot_walker import SnapshotWalker

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fsimage-ls",
        description="List the inodes of a namespace snapshot in ls -l style.",
    )
    parser.add_argument("-i", "--input", required=True, help="JSON-lines snapshot export to read.")
    parser.add_argument("-o", "--output", default=None, help="Listing file to write.")
    parser.add_argument(
        "-p", "--print-to-screen",
        action="store_true",
        default=settings.PRINT_TO_SCREEN,
        help="Also print the listing to stdout.",
    )
    parser.add_argument(
        "--parts",
        type=_positive_int,
        default=settings.NUMBER_OF_PARTS,
        help="Split the listing across up to this many files.",
    )
    parser.add_argument(
        "--part-size",
        type=_positive_int,
        default=settings.PART_SIZE_BYTES,
        help="Bytes per part before rolling (default: input size / parts).",
    )
    parser.add_argument(
        "--hardlink-id",
        action="store_true",
        default=settings.PRINT_HARDLINK_ID,
        help="Add a column with the hardlink id of hardlinked files.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging verbosity.",
    )
    return parser


def resolve_part_size(input_path: Path, parts: int, part_size: Optional[int]) -> Optional[int]:
    """Pick the byte size of each output part, spreading the input size evenly by default."""
    if parts <= 1:
        return None
    if part_size is not None:
        return part_size
    return max(1, math.ceil(input_path.stat().st_size / parts))


def main(argv: Optional[list[str]] = None) -> int:
    """
    Parse arguments, list the snapshot and return the exit status.

    Returns:
        0 when every inode was listed, 1 when the input ended early
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level))

    input_path = Path(args.input)
    if not input_path.is_file():
        raise SystemExit(f"Input not found: {input_path}")
    if args.output is None and not args.print_to_screen:
        raise SystemExit("Nothing to do: give --output or --print-to-screen.")

    visitor = LsImageVisitor(
        args.output,
        print_to_screen=args.print_to_screen,
        number_of_parts=args.parts,
        print_hardlink_id=args.hardlink_id,
        part_size=resolve_part_size(input_path, args.parts, args.part_size),
    )
    completed = SnapshotWalker(input_path).walk(visitor)

    if completed:
        logger.info(f"✓ Wrote {visitor.lines_written} line(s) to {len(visitor.part_paths)} part(s)")
        return 0
    return 1


if __name__ == "__main__":
    sys.exit(main())
