"""Responses for handler chains that ended in an exception.

``HTTPError`` (``NotFound`` from an exhausted route table included) keeps
its status; anything else is a 500. Handlers registered with
``App.error()`` are looked up by exception type, then by status, and may
take ``()``, ``(request)`` or ``(request, exc)``.
"""

import html
import inspect
import logging
import traceback
from collections.abc import Mapping
from typing import TypeAlias

from finch._internal.invoke import invoke
from finch._internal.types import ErrorHandler
from finch.errors import HTTPError
from finch.http.request import Request
from finch.http.response import Response, ResponseWriter, to_response

logger = logging.getLogger("finch.server")

ErrorHandlers: TypeAlias = Mapping[int | type, ErrorHandler]


async def run_error_handler(
    handler: ErrorHandler, request: Request, exc: Exception
) -> Response:
    """Call *handler* with as many of ``(request, exc)`` as it accepts."""
    arity = min(len(inspect.signature(handler).parameters), 2)
    return to_response(await invoke(handler, *(request, exc)[:arity]))


async def error_response(
    exc: Exception,
    request: Request,
    writer: ResponseWriter,
    handlers: ErrorHandlers,
    *,
    debug: bool = False,
) -> Response:
    """Pick the response for a chain that raised *exc*."""
    match exc:
        case HTTPError(status=status, detail=detail, headers=headers):
            if writer.response is not None:
                # Written, then ran off the end of the table: the write stands.
                logger.debug("%s %s: %s after a response", request.method, request.path, exc)
                return writer.response
            logger.debug("%d %s %s: %s", status, request.method, request.path, detail)
            handler = handlers.get(type(exc)) or handlers.get(status)
            if handler is None:
                body = html.escape(detail or f"Error {status}")
                return Response(body, status=status, headers=headers)
            response = await run_error_handler(handler, request, exc)
            return response.with_status(status) if response.status == 200 else response
        case _:
            logger.error("500 %s %s", request.method, request.path, exc_info=exc)
            handler = handlers.get(500) or handlers.get(type(exc))
            if handler is not None:
                return await run_error_handler(handler, request, exc)
            if debug:
                trace = "".join(traceback.format_exception(exc))
                return Response(f"<pre>{html.escape(trace)}</pre>", status=500)
            return Response("Internal Server Error", status=500)
