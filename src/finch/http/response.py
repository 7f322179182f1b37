"""HTTP responses.

``Response`` is the immutable value sent over ASGI, built through
chainable ``.with_*()`` transformations. ``ResponseWriter`` is the
mutable ``response`` argument handed to route handlers: it records at
most one ``Response`` for the request.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from finch.errors import ResponseAlreadySent
from finch.http.cookies import ONE_YEAR, SetCookie

if TYPE_CHECKING:
    from finch.templating.registry import TemplateRegistry

HTML = "text/html; charset=UTF-8"
JSON = "application/json; charset=UTF-8"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set status,
    headers, and cookies. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = HTML
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: tuple[tuple[str, str], ...]) -> Response:
        """Return a new Response with additional headers."""
        return replace(self, headers=(*self.headers, *headers))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def with_cookies(self, cookies: tuple[SetCookie, ...]) -> Response:
        """Return a new Response with additional Set-Cookie directives."""
        return replace(self, cookies=(*self.cookies, *cookies))

    def header(self, name: str) -> str | None:
        """Return the first value of header *name* (case-insensitive)."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(self.body_bytes)


def to_response(value: Any) -> Response:
    """Convert a handler return value into a Response.

    ``Response`` passes through, ``str``/``bytes`` become HTML, ``dict``
    and ``list`` become JSON.
    """
    if isinstance(value, Response):
        return value
    if isinstance(value, (str, bytes)):
        return Response(body=value, headers=(("Cache-Control", "no-cache"),))
    if isinstance(value, (dict, list)):
        return Response(
            body=json_module.dumps(value),
            content_type=JSON,
            headers=(("Cache-Control", "no-cache"),),
        )
    msg = f"Cannot convert {type(value).__name__} to a response"
    raise TypeError(msg)


@dataclass(slots=True)
class ResponseWriter:
    """The ``response`` argument of a route handler.

    Each writing method (``send``, ``json``, ``redirect``, ``render``)
    finishes the response; a second write raises ``ResponseAlreadySent``.
    Headers and cookies can be staged before the write.

    Usage::

        async def show_user(request, response, next):
            response.cookie("seen", "1")
            response.render({"user": await load(request.path_params["id"])}, "user")
    """

    templates: TemplateRegistry | None = None
    response: Response | None = None
    _headers: list[tuple[str, str]] = field(default_factory=list)
    _cookies: list[SetCookie] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        """True once a response has been written."""
        return self.response is not None

    def finish(self, response: Response) -> None:
        """Finish with a prebuilt ``Response``, adding staged headers and cookies."""
        if self.response is not None:
            msg = "Can't write data after the response was sent"
            raise ResponseAlreadySent(msg)
        self.response = response.with_headers(tuple(self._headers)).with_cookies(
            tuple(self._cookies)
        )

    def header(self, name: str, value: str) -> None:
        """Stage an extra header for the response."""
        self._check_open()
        self._headers.append((name, value))

    def cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = ONE_YEAR,
        path: str = "/",
        httponly: bool = True,
        secure: bool = True,
    ) -> None:
        """Stage a ``Set-Cookie`` for the response."""
        self._check_open()
        self._cookies.append(
            SetCookie(
                name=name,
                value=value,
                max_age=max_age,
                path=path,
                httponly=httponly,
                secure=secure,
            )
        )

    def send(self, content: str | bytes, status: int = 200) -> None:
        """Finish with an HTML body."""
        self.finish(to_response(content).with_status(status))

    def json(self, value: Any, status: int = 200) -> None:
        """Finish with a JSON body."""
        self.finish(
            Response(
                body=json_module.dumps(value),
                status=status,
                content_type=JSON,
                headers=(("Cache-Control", "no-cache"),),
            )
        )

    def redirect(self, location: str, status: int = 302) -> None:
        """Finish with a redirect to *location*."""
        self.finish(Response(status=status, headers=(("Location", location),)))

    def render(
        self,
        data: Any,
        template_id: str,
        dynamic: bool = False,
        status: int = 200,
    ) -> None:
        """Finish with a rendered template.

        The static renderer produces HTML; the dynamic renderer produces
        the structured document, sent as JSON.
        """
        self._check_open()
        if self.templates is None:
            msg = "No templates are loaded; call App.templates() first"
            raise RuntimeError(msg)
        if dynamic:
            self.json(self.templates.render_dynamic(template_id, data), status)
        else:
            self.send(self.templates.render_static(template_id, data), status)

    def _check_open(self) -> None:
        if self.response is not None:
            msg = "Can't write data after the response was sent"
            raise ResponseAlreadySent(msg)
