"""HTTP method enumeration and the Route frozen dataclass."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from finch.routing.pattern import Matcher, PatternSpec


class Method(StrEnum):
    """The HTTP methods a route can be registered under."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"


ALL_METHODS: tuple[Method, ...] = tuple(Method)
"""Fan-out set used by ``App.all()``: one route copy per method."""


def parse_method(value: str | Method) -> Method | None:
    """Return the ``Method`` for *value*, or None if it is not supported."""
    try:
        return Method(value.upper())
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class Route:
    """One entry of a per-method route table.

    ``matcher`` is the compiled form of ``pattern``. ``second_handler``
    runs as the continuation of ``handler`` when present.
    """

    method: Method
    pattern: PatternSpec
    matcher: Matcher
    handler: Callable[..., Any]
    second_handler: Callable[..., Any] | None = None
