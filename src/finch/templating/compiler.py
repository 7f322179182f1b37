"""Template compiler: ``TemplateIR`` to a pair of Python renderers.

The whole template becomes one generated module::

    def _fragment_0(data):
        template = ''
        for item in _lookup(data, 'items'):
            template += f'<li>{item}</li>'
        return template

    def render_static(data):
        return '<ul>' + _str(_fragment_0(data)) + '</ul>'

    def render_dynamic(data):
        return {'title': ..., 'head': [...], 'body': [...], ...}

``script[static]`` code is executed into the module namespace first, so
its definitions are globals for every generated function. The module is
built with ``compile()``/``exec()`` once per compilation; rendering is a
plain function call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, TypeAlias

import anyio

from finch.errors import TemplateError, TemplateNotFound, TemplateSyntaxError
from finch.templating.flatten import CodeBuilder, string_expression
from finch.templating.parser import Attrs, TemplateIR, parse_template
from finch.templating.runtime import FRAGMENT_NAMES, RESERVED_NAMES, new_namespace
from finch.templating.scope import rewrite_block, rewrite_expression

logger = logging.getLogger("finch.templates")

StructuredDoc: TypeAlias = dict[str, Any]


@dataclass(frozen=True, slots=True)
class CompiledRenderer:
    """The two renderers compiled from one template.

    Replaced wholesale on recompilation; a reference held by an
    in-flight request stays valid.
    """

    template_id: str
    static: Callable[[Any], str]
    dynamic: Callable[[Any], StructuredDoc]
    source: str = ""


class _Generator:
    """Generates the module source for one ``TemplateIR``."""

    def __init__(self, ir: TemplateIR, reserved: frozenset[str], autoescape: bool) -> None:
        self.ir = ir
        self.reserved = reserved
        self.wrap = "_escape" if autoescape else "_str"
        self.call_sites = frozenset(fragment.call_site[2:-2] for fragment in ir.fragments)

    def text(self, text: str) -> str:
        return string_expression(
            text,
            partial(rewrite_expression, reserved=self.reserved),
            wrap=self.wrap,
            raw=self.call_sites,
        )

    def attrs(self, attrs: Attrs) -> str:
        items = ", ".join(
            f"{{'attr': {name!r}, 'val': {self.text(value)}}}" for name, value in attrs
        )
        return f"[{items}]"

    def generate(self) -> str:
        code = CodeBuilder()
        for fragment in self.ir.fragments:
            code.add_line(f"def {fragment.name}(data):")
            code.indent()
            code.add_line("template = ''")
            if fragment.code.strip():
                code.add_block(rewrite_block(fragment.code, self.reserved | FRAGMENT_NAMES))
            code.add_line("return template")
            code.dedent()
            code.add_line("")

        code.add_line("def render_static(data):")
        code.indent()
        code.add_line(f"return {self.text(self.ir.document)}")
        code.dedent()
        code.add_line("")

        code.add_line("def render_dynamic(data):")
        code.indent()
        code.add_line("doc = {'title': '', 'head': [], 'body': [], 'attr': [], 'exec': []}")
        if self.ir.title is not None:
            code.add_line(f"doc['title'] = {self.text(self.ir.title)}")
        for head in self.ir.head:
            code.add_line(
                f"doc['head'].append({{'tag': {head.tag!r}, 'attrs': {self.attrs(head.attrs)}}})"
            )
        for body in self.ir.body:
            code.add_line(
                f"doc['body'].append({{'id': {body.id!r}, 'name': {body.name!r}, "
                f"'content': {self.text(body.content)}, 'attrs': {self.attrs(body.attrs)}}})"
            )
        for attr in self.ir.attr:
            code.add_line(
                f"doc['attr'].append({{'id': {attr.id!r}, 'attrs': {self.attrs(attr.attrs)}}})"
            )
        for entry in self.ir.exec:
            code.add_line(f"doc['exec'].append({self.text(entry)})")
        code.add_line("return doc")
        code.dedent()
        return str(code)


def compile_source(
    source: str,
    template_id: str,
    *,
    autoescape: bool = False,
    minify: bool = True,
    filename: str | None = None,
) -> CompiledRenderer:
    """Compile template markup into a ``CompiledRenderer``.

    Raises ``TemplateSyntaxError`` when the markup uses an unknown
    directive or contains code that is not valid Python, and
    ``TemplateError`` when ``script[static]`` code fails to execute.
    """
    filename = filename or f"<template {template_id}>"
    ir = parse_template(source, minify=minify, template_id=template_id)
    namespace = new_namespace()

    for block in ir.shared_code:
        try:
            exec(compile(block, filename, "exec"), namespace)  # noqa: S102
        except SyntaxError as exc:
            msg = f"invalid static script: {exc.msg} (line {exc.lineno})"
            raise TemplateSyntaxError(msg, template_id=template_id) from exc
        except Exception as exc:
            msg = f"{template_id}: static script failed: {exc!r}"
            raise TemplateError(msg) from exc

    reserved = RESERVED_NAMES | set(namespace) | {f.name for f in ir.fragments}
    try:
        module_source = _Generator(ir, frozenset(reserved), autoescape).generate()
        code = compile(module_source, filename, "exec")
    except SyntaxError as exc:
        msg = f"invalid expression: {exc.msg}"
        if exc.text:
            msg = f"{msg} in {exc.text.strip()!r}"
        raise TemplateSyntaxError(msg, template_id=template_id) from exc

    exec(code, namespace)  # noqa: S102
    logger.debug(
        "Compiled template %s (%d body, %d fragments)",
        template_id,
        len(ir.body),
        len(ir.fragments),
    )
    return CompiledRenderer(
        template_id=template_id,
        static=namespace["render_static"],
        dynamic=namespace["render_dynamic"],
        source=module_source,
    )


async def compile_file(
    path: str | Path,
    template_id: str | None = None,
    *,
    autoescape: bool = False,
    minify: bool = True,
) -> CompiledRenderer:
    """Read and compile a template file.

    The id defaults to the file name without its extension. Raises
    ``TemplateNotFound`` if the file cannot be read and
    ``TemplateSyntaxError`` if it is not UTF-8.
    """
    path = Path(path)
    template_id = template_id or path.stem
    try:
        source = await anyio.Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read template {template_id!r} from {path}: {exc.strerror}"
        raise TemplateNotFound(msg) from exc
    except UnicodeDecodeError as exc:
        msg = f"not valid UTF-8 (byte {exc.start}: {exc.reason})"
        raise TemplateSyntaxError(msg, template_id=template_id) from exc
    return compile_source(
        source,
        template_id,
        autoescape=autoescape,
        minify=minify,
        filename=str(path),
    )
