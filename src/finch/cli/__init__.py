"""Finch CLI: template checking and one-off rendering.

Entry point registered as ``finch`` in ``pyproject.toml``::

    [project.scripts]
    finch = "finch.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``finch`` command."""
    parser = argparse.ArgumentParser(
        prog="finch",
        description="Finch: a small router and template compiler for HTML services.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- finch check ------------------------------------------------------
    check_parser = subparsers.add_parser("check", help="Compile every template in a directory")
    check_parser.add_argument("directory", help="Template directory")
    check_parser.add_argument(
        "--extension",
        default=".template",
        help="Template file extension (default: .template)",
    )

    # -- finch render -----------------------------------------------------
    render_parser = subparsers.add_parser("render", help="Render one template file")
    render_parser.add_argument("file", help="Template file")
    render_parser.add_argument(
        "--data",
        default="{}",
        help="Render data as a JSON object (default: {})",
    )
    render_parser.add_argument(
        "--dynamic",
        action="store_true",
        help="Print the structured document as JSON instead of HTML",
    )
    render_parser.add_argument(
        "--autoescape",
        action="store_true",
        help="HTML-escape interpolated values",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "check":
        from finch.cli._check import run_check

        run_check(args)
    elif args.command == "render":
        from finch.cli._render import run_render

        run_render(args)
