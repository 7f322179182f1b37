"""Path pattern compilation.

Turns a route path specification into a matcher callable::

    "/about"            -> equality test, returns True / False
    "/static/*"         -> regex test, returns True / False
    "/users/:id"        -> returns {"id": "42"} / False
    "/files/:name?"     -> returns {} or {"name": "report"} / False
    re.compile(...)     -> search; groupdict() when the pattern has named groups
    callable            -> used as-is

Every ``*`` matches any text, ``/`` included. Required parameters capture
one or more non-``/`` characters; an optional parameter may be absent
together with its leading ``/``.
"""

import re
from collections.abc import Callable
from typing import TypeAlias

from finch.errors import ConfigurationError

MatchResult: TypeAlias = bool | dict[str, str]
Matcher: TypeAlias = Callable[[str], MatchResult]
PatternSpec: TypeAlias = str | re.Pattern[str] | Matcher

WILDCARD = "*"

# "/:name" or "/:name?"; the name is captured without the "?"
_PARAM_RE = re.compile(r"/:(\w+)(\?*)")

_REQUIRED = r"/([^/]+)"
_OPTIONAL = r"(?:/([^/]+))?"


def _translate(piece: str, names: list[str]) -> str:
    """Translate one wildcard-free piece into regex source.

    Parameter names are appended to *names* in capture order.
    """
    parts: list[str] = []
    pos = 0
    for m in _PARAM_RE.finditer(piece):
        parts.append(re.escape(piece[pos : m.start()]))
        names.append(m.group(1))
        parts.append(_OPTIONAL if m.group(2) else _REQUIRED)
        pos = m.end()
    parts.append(re.escape(piece[pos:]))
    return "".join(parts)


def pattern_source(path: str) -> tuple[str, list[str]]:
    """Return the regex source and ordered parameter names for *path*."""
    names: list[str] = []
    source = ".*".join(_translate(piece, names) for piece in path.split(WILDCARD))
    return source, names


def _regex_matcher(pattern: re.Pattern[str]) -> Matcher:
    if pattern.groupindex:

        def match_groups(path: str) -> MatchResult:
            m = pattern.search(path)
            if m is None:
                return False
            return {k: v for k, v in m.groupdict().items() if v is not None}

        return match_groups

    def match_any(path: str) -> MatchResult:
        return pattern.search(path) is not None

    return match_any


def compile_pattern(spec: PatternSpec, *, ignore_case: bool = False) -> Matcher:
    """Compile a route path specification into a matcher.

    The matcher returns ``False`` when the path does not match, ``True``
    for a match without parameters, and a fresh ``dict`` of bindings for
    a parameterised pattern. Note that a parameterised match can be an
    empty dict (an omitted optional parameter), so callers must test
    ``result is False`` rather than truthiness.

    Raises ``ConfigurationError`` if the pattern cannot be compiled.
    """
    if isinstance(spec, re.Pattern):
        return _regex_matcher(spec)
    if callable(spec):
        return spec
    if not isinstance(spec, str):
        msg = f"Route pattern must be a str, re.Pattern or callable, not {type(spec).__name__}"
        raise ConfigurationError(msg)

    source, names = pattern_source(spec)
    has_wildcard = WILDCARD in spec

    if not names and not has_wildcard:
        if ignore_case:
            folded = spec.casefold()
            return lambda path: path.casefold() == folded
        return lambda path: path == spec

    try:
        regex = re.compile(source, re.IGNORECASE if ignore_case else 0)
    except re.error as exc:
        msg = f"Route pattern {spec!r} does not compile: {exc}"
        raise ConfigurationError(msg) from exc

    if not names:
        return lambda path: regex.fullmatch(path) is not None

    def match_params(path: str) -> MatchResult:
        m = regex.fullmatch(path)
        if m is None:
            return False
        return {name: value for name, value in zip(names, m.groups()) if value is not None}

    return match_params
