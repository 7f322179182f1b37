"""ASGI handler: translates ASGI scope/messages to finch types.

The only component that touches raw ASGI directly. Converts scope dicts
to typed Request objects, runs the handler chain through the dispatcher,
and sends the resulting Response back through ASGI send().
"""

from typing import Any

from finch._internal.asgi import Receive, Scope, Send
from finch.config import AppConfig
from finch.context import request_scope
from finch.http.request import Request
from finch.http.response import Response, ResponseWriter, to_response
from finch.routing.dispatcher import Dispatcher
from finch.server.errors import ErrorHandlers, error_response
from finch.server.sender import send_response
from finch.templating.registry import TemplateRegistry

SECURITY_HEADERS: tuple[tuple[str, str], ...] = (
    ("X-Frame-Options", "sameorigin"),
    ("X-XSS-Protection", "1; mode=block"),
    ("X-Download-Options", "noopen"),
    ("X-Content-Type-Options", "nosniff"),
    ("X-DNS-Prefetch-Control", "off"),
    ("Strict-Transport-Security", "max-age=31556952; includeSubDomains"),
)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
    templates: TemplateRegistry | None,
    error_handlers: ErrorHandlers,
    config: AppConfig,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive, max_body=config.max_content_length)

    if len(request.path) > 1 and request.path.endswith("/"):
        stripped = request.path[:-1]
        if config.trailing_slash_redirect:
            location = stripped + request.search
            response = Response(status=301, headers=(("Location", location),))
            await _send(response, request, send, config)
            return
        request = request.with_path(stripped)

    writer = ResponseWriter(templates=templates)
    with request_scope(request):
        try:
            result = await dispatcher.dispatch(request, writer)
            response = _finish(writer, result, request)
        except Exception as exc:
            response = await error_response(
                exc, request, writer, error_handlers, debug=config.debug
            )

    await _send(response, request, send, config)


def _finish(writer: ResponseWriter, result: Any, request: Request) -> Response:
    """Pick the response for a completed handler chain."""
    if writer.response is not None:
        return writer.response
    if result is not None:
        writer.finish(to_response(result))
        return writer.response
    msg = f"Handler chain for {request.method} {request.path} returned without responding"
    raise RuntimeError(msg)


async def _send(response: Response, request: Request, send: Send, config: AppConfig) -> None:
    if config.security_headers:
        response = response.with_headers(SECURITY_HEADERS)
    await send_response(response, send, head=request.method == "HEAD")
