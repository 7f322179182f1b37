"""In-process client for exercising a finch app in tests.

Requests go straight into ``App.__call__`` as ASGI messages and the
captured messages come back as a ``Response``, so assertions use the
same type handlers produce.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, field
from typing import Any, TypeAlias
from urllib.parse import urlencode

from finch.app import App
from finch.http.response import HTML, Response

Headers: TypeAlias = dict[str, str] | None


def encode_body(
    body: bytes | None = None,
    json: Any = None,
    form: dict[str, str] | None = None,
) -> tuple[bytes, dict[str, str]]:
    """Return the request body and the content type header it implies."""
    if json is not None:
        return json_module.dumps(json).encode(), {"content-type": "application/json"}
    if form is not None:
        return urlencode(form).encode(), {"content-type": "application/x-www-form-urlencoded"}
    return body or b"", {}


@dataclass(slots=True)
class _Capture:
    """Collects the ``http.response.*`` messages of one request."""

    status: int = 200
    headers: list[tuple[bytes, bytes]] = field(default_factory=list)
    chunks: list[bytes] = field(default_factory=list)

    async def send(self, message: dict[str, Any]) -> None:
        match message["type"]:
            case "http.response.start":
                self.status = message["status"]
                self.headers = list(message.get("headers", ()))
            case "http.response.body":
                self.chunks.append(message.get("body", b""))

    def response(self) -> Response:
        content_type = HTML
        headers: list[tuple[str, str]] = []
        for raw_name, raw_value in self.headers:
            name, value = raw_name.decode("latin-1"), raw_value.decode("latin-1")
            if name == "content-type":
                content_type = value
            elif name != "content-length":
                headers.append((name, value))
        return Response(
            body=b"".join(self.chunks),
            status=self.status,
            content_type=content_type,
            headers=tuple(headers),
        )


class TestClient:
    """Drive an ``App`` without a server.

    Entering the client runs the app's startup hooks; leaving it runs
    the shutdown hooks::

        async with TestClient(app) as client:
            response = await client.get("/users/1")
            assert response.status == 200
    """

    __test__ = False

    __slots__ = ("app", "client")

    def __init__(self, app: App, client: tuple[str, int] = ("127.0.0.1", 0)) -> None:
        self.app = app
        self.client = client

    async def __aenter__(self) -> TestClient:
        await self.app.startup()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.app.shutdown()

    async def get(self, path: str, *, headers: Headers = None) -> Response:
        return await self.request("GET", path, headers=headers)

    async def head(self, path: str, *, headers: Headers = None) -> Response:
        return await self.request("HEAD", path, headers=headers)

    async def delete(self, path: str, *, headers: Headers = None) -> Response:
        return await self.request("DELETE", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: Headers = None,
        body: bytes | None = None,
        json: Any = None,
        form: dict[str, str] | None = None,
    ) -> Response:
        """POST a raw, JSON or urlencoded body."""
        payload, implied = encode_body(body, json, form)
        return await self.request("POST", path, headers=implied | (headers or {}), body=payload)

    async def put(
        self,
        path: str,
        *,
        headers: Headers = None,
        body: bytes | None = None,
        json: Any = None,
        form: dict[str, str] | None = None,
    ) -> Response:
        """PUT a raw, JSON or urlencoded body."""
        payload, implied = encode_body(body, json, form)
        return await self.request("PUT", path, headers=implied | (headers or {}), body=payload)

    async def request(
        self,
        method: str,
        target: str,
        *,
        headers: Headers = None,
        body: bytes = b"",
    ) -> Response:
        """Send one request; *target* may carry a query string."""
        path, _, query = target.partition("?")
        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "scheme": "http",
            "path": path,
            "raw_path": path.encode("latin-1"),
            "query_string": query.encode("latin-1"),
            "root_path": "",
            "headers": [
                (name.lower().encode("latin-1"), value.encode("latin-1"))
                for name, value in (headers or {}).items()
            ],
            "server": ("testserver", 80),
            "client": self.client,
        }
        messages = [{"type": "http.request", "body": body, "more_body": False}]

        async def receive() -> dict[str, Any]:
            return messages.pop(0) if messages else {"type": "http.disconnect"}

        capture = _Capture()
        await self.app(scope, receive, capture.send)
        return capture.response()
