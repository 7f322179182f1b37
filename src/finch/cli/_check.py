"""``finch check``: compile every template in a directory.

Prints one line per template and exits with code 1 if any template
fails to compile.
"""

import argparse
import sys
from pathlib import Path

import anyio

from finch.errors import TemplateError
from finch.templating.compiler import compile_file


async def check_directory(directory: Path, extension: str) -> list[tuple[str, str | None]]:
    """Compile each ``*<extension>`` file; return ``(id, error or None)`` pairs."""
    results: list[tuple[str, str | None]] = []
    for path in sorted(directory.glob(f"*{extension}")):
        template_id = path.name.removesuffix(extension)
        try:
            await compile_file(path, template_id)
        except TemplateError as exc:
            results.append((template_id, str(exc)))
        else:
            results.append((template_id, None))
    return results


def run_check(args: argparse.Namespace) -> None:
    """Compile the templates in ``args.directory`` and report the outcome."""
    directory = Path(args.directory)
    if not directory.is_dir():
        print(f"Error: {directory} is not a directory", file=sys.stderr)
        raise SystemExit(1)

    results = anyio.run(check_directory, directory, args.extension)
    failures = 0
    for template_id, error in results:
        if error is None:
            print(f"ok    {template_id}")
        else:
            failures += 1
            print(f"FAIL  {template_id}: {error}")

    print(f"{len(results)} template(s), {failures} failure(s)")
    if failures:
        raise SystemExit(1)
