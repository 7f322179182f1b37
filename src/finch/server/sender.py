"""Write a ``Response`` to the ASGI ``send`` callable."""

from collections.abc import Iterator

from finch._internal.asgi import Send
from finch.http.response import Response

# Statuses whose responses never carry a body
_BODILESS = frozenset({204, 304})


def _header_lines(response: Response, length: int) -> Iterator[tuple[str, str]]:
    yield "content-type", response.content_type
    yield from response.headers
    for cookie in response.cookies:
        yield "set-cookie", cookie.to_header_value()
    yield "content-length", str(length)


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Send the start and body messages for *response*.

    ``HEAD`` gets the headers a ``GET`` would, ``content-length`` included,
    and an empty body.
    """
    status = response.status
    body = b"" if status < 200 or status in _BODILESS else response.body_bytes
    headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in _header_lines(response, len(body))
    ]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": b"" if head else body})
