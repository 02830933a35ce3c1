"""CLI entrypoints for repoatlas commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .logging import configure_logging
from .orchestrator import Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repoatlas",
        description="Map a repository: architecture, Start Here and Danger Zones.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a workspace and print the report as JSON.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    analyze_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (defaults to .repoatlas.yml in the analyzed path).",
    )
    analyze_parser.add_argument(
        "--time-budget",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Stop per-file analysis after this many seconds and report partial results.",
    )
    analyze_parser.add_argument(
        "--compact",
        action="store_true",
        help="Print the JSON report on a single line.",
    )
    analyze_parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only log warnings, such as results cut short by --time-budget.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repoatlas commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet))

    if args.command == "analyze":
        root = Path(args.path)
        try:
            config = load_config(args.config if args.config is not None else _default_config_dir(root))
            if args.time_budget is not None:
                config.time_budget_seconds = args.time_budget
            report = Orchestrator(config).analyze(root)
        except (FileNotFoundError, NotADirectoryError, ConfigError) as exc:
            parser.exit(1, f"{exc}\n")
        indent = None if args.compact else 2
        json.dump(report.to_dict(), sys.stdout, indent=indent)
        sys.stdout.write("\n")


def _default_config_dir(root: Path) -> Path | None:
    return root if root.is_dir() else None


if __name__ == "__main__":  # pragma: no cover
    main()
