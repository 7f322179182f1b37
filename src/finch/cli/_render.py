"""``finch render``: render one template file to stdout."""

import argparse
import json
import sys
from functools import partial

import anyio

from finch.errors import TemplateError
from finch.templating.compiler import compile_file


def run_render(args: argparse.Namespace) -> None:
    """Compile ``args.file`` and print its static or dynamic rendering."""
    try:
        data = json.loads(args.data)
    except json.JSONDecodeError as exc:
        print(f"Error: --data is not valid JSON: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        renderer = anyio.run(partial(compile_file, args.file, autoescape=args.autoescape))
    except TemplateError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if args.dynamic:
        print(json.dumps(renderer.dynamic(data), indent=2))
    else:
        print(renderer.static(data))
