"""Route dispatch with explicit continuations.

The dispatcher walks one method's table strictly in registration order.
The first matching route's handler is called as
``handler(request, response, next)``; calling ``next()`` resumes the
scan after that route, so handlers compose like middleware::

    async def require_login(request, response, next):
        if "session" not in request.cookies:
            return response.redirect("/login")
        return await next()

    app.all("/admin/*", require_login)
    app.get("/admin/users", list_users)

A route with a second handler runs it as the first handler's
continuation; the second handler receives the continuation that resumes
the outer scan.

A sync handler may call ``next()`` without returning it; the
continuation it started is awaited once the handler returns.

Scanning past the end of the table raises ``NotFound``. The exception
travels back through every ``await next()`` in the chain, so a handler
can catch it to provide its own fallback.
"""

import inspect
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from finch._internal.invoke import invoke
from finch.errors import NotFound
from finch.http.request import Request
from finch.http.response import ResponseWriter
from finch.routing.route import Route
from finch.routing.table import RouteTable


class Continuation:
    """The ``next`` argument handed to a handler.

    Calling it starts the rest of the chain and remembers the started
    coroutine, so a chain a sync handler kicked off is still run.
    """

    __slots__ = ("_resume", "pending")

    def __init__(self, resume: Callable[[], Awaitable[Any]]) -> None:
        self._resume = resume
        self.pending: Awaitable[Any] | None = None

    def __call__(self) -> Awaitable[Any]:
        self.pending = self._resume()
        return self.pending

    def unawaited(self) -> Awaitable[Any] | None:
        """The started continuation, if nothing has awaited it yet."""
        pending = self.pending
        if inspect.iscoroutine(pending) and (
            inspect.getcoroutinestate(pending) == inspect.CORO_CREATED
        ):
            return pending
        return None


class Dispatcher:
    """Resolve requests against a ``RouteTable``."""

    __slots__ = ("_table",)

    def __init__(self, table: RouteTable) -> None:
        self._table = table

    async def dispatch(self, request: Request, response: ResponseWriter) -> Any:
        """Run the handler chain for *request*.

        Returns whatever the first invoked handler returns (handlers that
        pass on the result of ``next()`` forward the later handlers'
        return values).
        """
        routes = self._table.routes(request.method)
        return await self._scan(routes, 0, request, response)

    async def _scan(
        self,
        routes: tuple[Route, ...],
        index: int,
        request: Request,
        response: ResponseWriter,
    ) -> Any:
        for i in range(index, len(routes)):
            route = routes[i]
            result = route.matcher(request.path)
            if result is False:
                continue
            if isinstance(result, dict):
                request = request.with_params(result)

            next_ = Continuation(partial(self._scan, routes, i + 1, request, response))
            if route.second_handler is not None:
                next_ = Continuation(
                    partial(self._run, route.second_handler, request, response, next_)
                )
            return await self._run(route.handler, request, response, next_)

        raise NotFound(f"No route matches {request.method} {request.path!r}")

    async def _run(
        self,
        handler: Callable[..., Any],
        request: Request,
        response: ResponseWriter,
        next_: Continuation,
    ) -> Any:
        result = await invoke(handler, request, response, next_)
        pending = next_.unawaited()
        if pending is not None:
            forwarded = await pending
            if result is None:
                result = forwarded
        return result
