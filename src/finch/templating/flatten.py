"""Interpolation flattening and source generation.

Template text marks render-time expressions as ``$$expr$$``; ``expr``
holds no ``$`` and no whitespace. Flattening turns such text into a
single Python string expression::

    "Hello $$user.name$$!"  ->  'Hello ' + _str(_getattr(_lookup(data, 'user'), 'name')) + '!'

Fragment call-sites inserted by the parser use the same syntax
(``$$_fragment_0(data)$$``), so one pass resolves markup, interpolations
and fragment calls alike.
"""

import html
import re
from collections.abc import Callable, Collection
from dataclasses import dataclass
from typing import TypeAlias

INTERPOLATION_RE = re.compile(r"\$\$([^$\s]+)\$\$")

_WHITESPACE_RE = re.compile(r"\s+")
_AFTER_TAG_RE = re.compile(r">\s+")


@dataclass(frozen=True, slots=True)
class Literal:
    """Text emitted verbatim."""

    text: str


@dataclass(frozen=True, slots=True)
class Expression:
    """Python expression source evaluated at render time."""

    source: str


Part: TypeAlias = Literal | Expression


def split_interpolations(text: str) -> list[Part]:
    """Split *text* into literal and expression parts, in order.

    Empty literals are dropped. Expression text is HTML-unescaped, since
    it may come from serialized markup (``a &lt; b`` -> ``a < b``).
    """
    parts: list[Part] = []
    pos = 0
    for m in INTERPOLATION_RE.finditer(text):
        if m.start() > pos:
            parts.append(Literal(text[pos : m.start()]))
        parts.append(Expression(html.unescape(m.group(1))))
        pos = m.end()
    if pos < len(text):
        parts.append(Literal(text[pos:]))
    return parts


def string_expression(
    text: str,
    rewrite: Callable[[str], str],
    *,
    wrap: str = "_str",
    raw: Collection[str] = (),
) -> str:
    """Return Python source evaluating to *text* with its interpolations.

    *rewrite* maps raw expression source to compilable source; each
    expression is passed through the *wrap* helper so the result is
    always a ``str``. Expressions listed in *raw* (fragment call-sites,
    which already produce markup) are never escaped.
    """
    pieces: list[str] = []
    for part in split_interpolations(text):
        match part:
            case Literal(text=literal):
                pieces.append(repr(literal))
            case Expression(source=source):
                helper = "_str" if source in raw else wrap
                pieces.append(f"{helper}({rewrite(source)})")
    if not pieces:
        return "''"
    return " + ".join(pieces)


def collapse_whitespace(markup: str) -> str:
    """Minify markup: one space per whitespace run, none after a tag."""
    collapsed = _WHITESPACE_RE.sub(" ", markup.strip())
    return _AFTER_TAG_RE.sub(">", collapsed)


class CodeBuilder:
    """Build source code conveniently."""

    INDENT_STEP = 4

    def __init__(self, indent: int = 0) -> None:
        self.code: list[str] = []
        self.indent_level = indent

    def __str__(self) -> str:
        return "".join(self.code)

    def add_line(self, line: str) -> None:
        """Add a line of source; indentation and newline are added for you."""
        self.code.extend([" " * self.indent_level, line, "\n"])

    def add_block(self, source: str) -> None:
        """Add multi-line source at the current indentation."""
        for line in source.splitlines():
            self.add_line(line)

    def indent(self) -> None:
        """Increase the current indent for following lines."""
        self.indent_level += self.INDENT_STEP

    def dedent(self) -> None:
        """Decrease the current indent for following lines."""
        self.indent_level -= self.INDENT_STEP
