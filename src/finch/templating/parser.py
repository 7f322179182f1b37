"""Template parsing: markup to ``TemplateIR``.

A template is an HTML document annotated with ``render`` directives::

    <script static>
    def shout(s):
        return s.upper()
    </script>
    <title render="title">Hello $$user.name$$</title>
    <div render="body" id="main" class="$$theme$$">
      <script template>
    for item in items:
        template += f"<li>{item}</li>"
      </script>
    </div>

The parser extracts everything the code generator needs and leaves
interpolations (``$$expr$$``) untouched; flattening happens later.
"""

import re
import textwrap
from typing import TypeAlias
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, NavigableString, Tag

from finch.errors import TemplateSyntaxError
from finch.templating.flatten import collapse_whitespace

RENDER_TYPES = frozenset({"title", "head", "body", "attr", "exec"})

# Attributes that address an entry rather than describe it
_ENTRY_KEYS = frozenset({"id", "name"})

Attrs: TypeAlias = tuple[tuple[str, str], ...]

# Stands in for one whitespace-only string while minify is off
_MARKER_RE = re.compile("\ue000(\\d+)\ue001")


@dataclass(frozen=True, slots=True)
class HeadEntry:
    """An element to append to the document head."""

    tag: str
    attrs: Attrs = ()


@dataclass(frozen=True, slots=True)
class BodyEntry:
    """A block of body markup, addressed by element id."""

    id: str | None
    name: str | None
    content: str
    attrs: Attrs = ()


@dataclass(frozen=True, slots=True)
class AttrEntry:
    """Attribute bindings for the element with the given id."""

    id: str | None
    attrs: Attrs = ()


@dataclass(frozen=True, slots=True)
class Fragment:
    """A ``script[template]`` body compiled to its own function."""

    name: str
    code: str

    @property
    def call_site(self) -> str:
        return f"$${self.name}(data)$$"


@dataclass(slots=True)
class TemplateIR:
    """Intermediate form of one template, consumed by the compiler."""

    title: str | None = None
    head: list[HeadEntry] = field(default_factory=list)
    body: list[BodyEntry] = field(default_factory=list)
    attr: list[AttrEntry] = field(default_factory=list)
    exec: list[str] = field(default_factory=list)
    fragments: list[Fragment] = field(default_factory=list)
    shared_code: list[str] = field(default_factory=list)
    document: str = ""


class _WhitespaceShield:
    """Keeps whitespace-only text verbatim through serialization.

    The serializer may reformat whitespace-only strings between tags, so
    with minify off they are swapped for markers and put back in every
    string taken out of the tree.
    """

    __slots__ = ("saved",)

    def __init__(self) -> None:
        self.saved: list[str] = []

    def protect(self, soup: BeautifulSoup) -> None:
        for text in soup.find_all(string=True):
            if type(text) is NavigableString and text.isspace():
                marker = f"\ue000{len(self.saved)}\ue001"
                self.saved.append(str(text))
                text.replace_with(NavigableString(marker))

    def restore(self, markup: str) -> str:
        if not self.saved:
            return markup
        return _MARKER_RE.sub(lambda m: self.saved[int(m.group(1))], markup)


def _script_source(elem: Tag) -> str:
    return textwrap.dedent(elem.string or "").strip("\n")


def _attrs(elem: Tag, *, exclude: frozenset[str] = frozenset()) -> Attrs:
    return tuple(
        (key, "" if value is None else str(value))
        for key, value in elem.attrs.items()
        if key not in exclude
    )


def parse_template(
    source: str,
    *,
    minify: bool = True,
    template_id: str | None = None,
) -> TemplateIR:
    """Parse template markup into a ``TemplateIR``.

    Raises ``TemplateSyntaxError`` for an unknown ``render`` value.
    """
    soup = BeautifulSoup(source, "html.parser", multi_valued_attributes=None)
    ir = TemplateIR()
    shield = _WhitespaceShield()
    if minify:
        tidy = collapse_whitespace
    else:
        shield.protect(soup)
        tidy = lambda markup: shield.restore(markup).strip()  # noqa: E731

    for elem in soup.find_all("script", attrs={"static": True}):
        ir.shared_code.append(_script_source(elem))
        elem.decompose()

    for index, elem in enumerate(soup.find_all("script", attrs={"template": True})):
        fragment = Fragment(name=f"_fragment_{index}", code=_script_source(elem))
        ir.fragments.append(fragment)
        elem.replace_with(NavigableString(fragment.call_site))

    for elem in soup.find_all(attrs={"render": True}):
        render_type = elem["render"]
        del elem["render"]

        match render_type:
            case "title":
                ir.title = shield.restore(elem.get_text())
            case "head":
                ir.head.append(
                    HeadEntry(tag=elem.name, attrs=_attrs(elem, exclude=_ENTRY_KEYS))
                )
            case "body":
                ir.body.append(
                    BodyEntry(
                        id=elem.get("id"),
                        name=elem.get("name"),
                        content=tidy(elem.decode_contents()),
                        attrs=_attrs(elem, exclude=_ENTRY_KEYS),
                    )
                )
            case "attr":
                ir.attr.append(
                    AttrEntry(id=elem.get("id"), attrs=_attrs(elem, exclude=_ENTRY_KEYS))
                )
            case "exec":
                ir.exec.append(tidy(elem.decode_contents()))
            case _:
                msg = f"unknown render type [{render_type}]"
                raise TemplateSyntaxError(msg, template_id=template_id)

    ir.document = tidy(soup.decode())
    return ir
