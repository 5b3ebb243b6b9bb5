"""Main CLI entry point for gitscaffold.

Provides commands: fetch, create
"""

import argparse
import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from gitscaffold.cli.create import create_command
from gitscaffold.cli.fetch import fetch_command

logger = logging.getLogger("gitscaffold.cli")


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Setup logging configuration with Rich integration.

    Args:
        verbose: Enable verbose logging.
        console: Rich Console instance for coordinated output (optional).
    """
    level = logging.DEBUG if verbose else logging.INFO

    # Share the console with the progress display so lines do not interleave
    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        log_time_format="[%H:%M:%S]",
    )

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="gitscaffold",
        description="Gitscaffold - scaffold projects from git templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging and show raw git output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    fetch_parser = subparsers.add_parser(
        "fetch",
        help="Clone a repository ref with submodules into a directory",
    )
    fetch_parser.add_argument("repo_url", help="Repository URL to clone")
    fetch_parser.add_argument("target_dir", help="Directory to clone into")
    fetch_parser.add_argument(
        "-r",
        "--ref",
        default="main",
        help="Branch, tag or commit to check out (default: main)",
    )

    create_parser = subparsers.add_parser(
        "create",
        help="Create a new project from a template",
    )
    create_parser.add_argument("name", help="Project name")
    create_parser.add_argument(
        "--dir",
        default=".",
        help="Parent directory for the project (default: current directory)",
    )
    create_parser.add_argument(
        "--arch",
        default="task",
        help="Template architecture (default: task)",
    )
    create_parser.add_argument(
        "--lang",
        default="go",
        help="Template language (default: go)",
    )
    create_parser.add_argument(
        "--template-url",
        help="Template repository URL, overriding the catalog",
    )
    create_parser.add_argument(
        "--template-version",
        help="Template ref to clone, overriding the catalog version",
    )
    create_parser.add_argument(
        "--templates",
        help=(
            "Template catalog to use instead of the bundled one. Can be a "
            "path to a TOML/JSON file or an inline TOML/JSON string."
        ),
    )
    create_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace the project directory if it already exists",
    )

    return parser


def main() -> int:
    """Main CLI entry point.

    Returns:
        int: Exit code.
    """
    parser = build_parser()
    args = parser.parse_args()

    console = Console(stderr=True)
    setup_logging(args.verbose, console=console)

    if args.command == "fetch":
        return fetch_command(args, console=console)
    if args.command == "create":
        return create_command(args, console=console)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
