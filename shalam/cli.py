"""Command-line entry point for CSS sprite workflows."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import config, runner
from .core.errors import ValidationError

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shalam",
        description="Pack the background images of a stylesheet into one sprite and rewrite the CSS.",
    )
    parser.add_argument("css", type=Path, nargs="?", help="Stylesheet to rewrite")
    parser.add_argument("img", nargs="?", help="Directory holding the images referenced by the stylesheet")
    parser.add_argument("sprite", type=Path, nargs="?", help="Destination sprite path (PNG)")
    parser.add_argument(
        "--config",
        type=Path,
        help="JSON instruction file (an array, or an object with a 'shalam' array)",
    )
    parser.add_argument(
        "--only",
        action="append",
        metavar="NAME",
        help="Run only the named instruction (repeatable)",
    )
    parser.add_argument("--output", type=Path, help="Write the rewritten CSS here instead of in place")
    parser.add_argument("--manifest", type=Path, help="Optional JSON manifest of sprite placements")
    parser.add_argument("--padding", type=int, help="Margin right of and below each image (default: 1)")
    parser.add_argument("--max-width", type=int, help="Maximum sprite width in pixels (default: widest image)")
    parser.add_argument("--workers", type=int, help="Worker threads for decoding and instructions")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate arguments and list instructions without rendering outputs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _collect_instructions(args: argparse.Namespace, parser: argparse.ArgumentParser):
    if args.config:
        if args.css or args.img or args.sprite:
            parser.error("positional arguments cannot be combined with --config")
        if args.output or args.manifest:
            parser.error("--output and --manifest apply to a single stylesheet, not --config")
        instructions = config.load_instructions(args.config)
        return config.filter_instructions(instructions, args.only), args.config.resolve().parent

    if not (args.css and args.img and args.sprite):
        parser.error("provide CSS IMG SPRITE, or --config")
    if args.only:
        parser.error("--only requires --config")
    entry = {
        "name": args.css.stem,
        "css": str(args.css),
        "img": args.img,
        "sprite": str(args.sprite),
        "output": str(args.output) if args.output else None,
        "manifest": str(args.manifest) if args.manifest else None,
    }
    return config.parse_instructions([entry]), Path.cwd()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        instructions, base_dir = _collect_instructions(args, parser)
        settings = config.settings_from_env(padding=args.padding, max_width=args.max_width, workers=args.workers)
    except ValidationError as exc:
        logger.error("%s", exc)
        return 2

    if args.dry_run:
        for instruction in instructions:
            print(f"{instruction.name}: {instruction.css} + {instruction.img} -> {instruction.sprite}")
        return 0

    results = runner.run_instructions(instructions, base_dir, settings=settings, max_workers=args.workers)
    return 0 if all(result.ok for result in results) else 1


if __name__ == "__main__":
    sys.exit(main())
