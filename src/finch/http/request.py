"""Immutable HTTP request.

Frozen metadata with async body access. Route parameters are bound by
the dispatcher through ``with_params()``, which returns a new request.
"""

from __future__ import annotations

import json as json_module
import logging
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, TypeAlias
from urllib.parse import parse_qsl

from finch._internal.asgi import Receive
from finch.errors import HTTPError
from finch.http.cookies import parse_cookies
from finch.http.headers import Headers
from finch.http.query import parse_query

logger = logging.getLogger("finch.server")


# -- Decoded body --


@dataclass(frozen=True, slots=True)
class Absent:
    """The request carried no body finch knows how to decode."""


@dataclass(frozen=True, slots=True)
class JsonNull:
    """The request body was the JSON literal ``null``."""


@dataclass(frozen=True, slots=True)
class Fields:
    """A JSON object or a urlencoded form, as a name -> value mapping."""

    values: Mapping[str, Any]


Body: TypeAlias = Absent | JsonNull | Fields


def decode_body(raw: bytes, content_type: str) -> Body:
    """Decode *raw* according to *content_type*.

    JSON objects and urlencoded forms become ``Fields``; JSON ``null``
    becomes ``JsonNull``. Everything else, including malformed or
    non-object JSON, is ``Absent``.
    """
    ct = content_type.lower()
    if "application/json" in ct:
        try:
            value = json_module.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            logger.debug("Discarding malformed JSON body (%d bytes)", len(raw))
            return Absent()
        match value:
            case None:
                return JsonNull()
            case dict():
                return Fields(value)
            case _:
                return Absent()
    if "application/x-www-form-urlencoded" in ct:
        return Fields(dict(parse_qsl(raw.decode("utf-8"), keep_blank_values=True)))
    return Absent()


def parse_accept_language(header: str) -> list[str]:
    """Return the languages of an ``Accept-Language`` value, best first.

    Entries without a ``q`` weight count as ``q=1``; ties keep header
    order.
    """
    weighted: list[tuple[str, float]] = []
    for entry in header.split(","):
        lang, _, params = entry.partition(";")
        lang = lang.strip()
        if not lang:
            continue
        q = 1.0
        if "=" in params:
            try:
                q = float(params.partition("=")[2])
            except ValueError:
                q = 0.0
        weighted.append((lang, q))
    return [lang for lang, _ in sorted(weighted, key=lambda item: -item[1])]


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()``, ``.json()``,
    ``.parsed_body()``.
    """

    method: str
    path: str
    headers: Headers
    query: Mapping[str, str]
    path_params: dict[str, str]
    search: str
    client: tuple[str, int] | None
    cookies: Mapping[str, str]

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    # Private: body size limit in bytes (None = unlimited)
    _max_body: int | None = None

    # Private: mutable cache for the body and its decoded forms
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Path plus the original query string."""
        return self.path + self.search

    @property
    def ip(self) -> str | None:
        """Client address, preferring the first ``X-Forwarded-For`` hop."""
        forwarded = self.headers.get_list("x-forwarded-for")
        if forwarded:
            return forwarded[0].split(",")[0].strip()
        if self.client:
            return self.client[0]
        return None

    @property
    def langs(self) -> list[str]:
        """Accepted languages, most preferred first."""
        return parse_accept_language(self.headers.get("accept-language", ""))

    def with_params(self, params: dict[str, str]) -> Request:
        """Return a copy bound to a new set of route parameters."""
        return replace(self, path_params=params)

    def with_path(self, path: str) -> Request:
        """Return a copy with a different path (e.g. trailing slash removed)."""
        return replace(self, path=path)

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached: the ASGI receive is consumed once, then the
        same bytes are returned on subsequent calls. Raises a 413
        ``HTTPError`` past the configured size limit.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks: list[bytes] = []
        size = 0
        async for chunk in self.stream():
            size += len(chunk)
            if self._max_body is not None and size > self._max_body:
                raise HTTPError(413, "Request body too large")
            chunks.append(chunk)
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON."""
        raw = await self.body()
        return json_module.loads(raw)

    async def parsed_body(self) -> Body:
        """Decode the body by content type into the ``Body`` union.

        Pattern-match on the result::

            match await request.parsed_body():
                case Fields(values):
                    ...
                case JsonNull():
                    ...
                case Absent():
                    ...
        """
        if "_parsed" in self._cache:
            return self._cache["_parsed"]
        result = decode_body(await self.body(), self.content_type or "")
        self._cache["_parsed"] = result
        return result

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Mapping[str, Any],
        receive: Receive,
        *,
        max_body: int | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        client = scope.get("client")
        query_string = scope.get("query_string", b"").decode("latin-1")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query=parse_query(query_string),
            path_params={},
            search=f"?{query_string}" if query_string else "",
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
            _max_body=max_body,
        )
