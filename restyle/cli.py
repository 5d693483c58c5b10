"""CLI entrypoints for restyle commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .coordinator import Coordinator, plan_jobs
from .logging import configure_logging


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restyle",
        description="Extract inline presentation attributes of TSX components into typed accessor modules.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract styles for every configured style and component.",
    )
    _add_verbose_option(extract_parser, suppress_default=True)
    extract_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )
    extract_parser.add_argument(
        "--style",
        action="append",
        dest="styles",
        help="Style to process; repeat for several (defaults to the configured styles).",
    )
    extract_parser.add_argument(
        "--component",
        action="append",
        dest="components",
        help="Component to process; repeat for several (defaults to every discovered component).",
    )
    extract_parser.add_argument(
        "--workers",
        type=_positive_int,
        help="Number of parallel workers (1 runs jobs inline).",
    )
    extract_parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write logs to this file.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for restyle commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=getattr(args, "log_file", None))

    if args.command == "extract":
        root = Path(args.path)
        if not root.exists():
            parser.exit(1, f"Project path not found: {root}\n")
        try:
            config = load_config(root)
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
        jobs = plan_jobs(config, styles=args.styles, components=args.components)
        outcomes = Coordinator(config, workers=args.workers).run(jobs)
        failed = [outcome for outcome in outcomes if not outcome.ok]
        succeeded = len(outcomes) - len(failed)
        print(f"Extracted {succeeded} component(s), {len(failed)} failed")
        for outcome in failed:
            print(f"  {outcome.style}/{outcome.component}: {outcome.error}", file=sys.stderr)
        return 1 if failed else 0
    parser.exit(1, "Unknown command\n")  # pragma: no cover - argparse enforces choices
    return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
