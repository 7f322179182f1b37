"""Per-request context.

The ASGI handler runs every handler chain inside ``request_scope()``,
which binds the request and a fresh ``g`` namespace to the current task.
A guard early in the route table can hand data on to the routes after it
without threading it through ``next()``::

    async def load_user(request, response, next):
        g.user = await users.get(request.cookies.get("session"))
        return await next()
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from finch.http.request import Request

request_var: ContextVar[Request] = ContextVar("finch.request")
_state_var: ContextVar[dict[str, Any]] = ContextVar("finch.state")


def get_request() -> Request:
    """Return the request being handled; ``LookupError`` outside one."""
    return request_var.get()


@contextmanager
def request_scope(request: Request) -> Iterator[Request]:
    """Bind *request* and an empty ``g`` for the duration of the block."""
    request_token = request_var.set(request)
    state_token = _state_var.set({})
    try:
        yield request
    finally:
        _state_var.reset(state_token)
        request_var.reset(request_token)


def _state() -> dict[str, Any]:
    try:
        return _state_var.get()
    except LookupError:
        msg = "g is only available while a request is being handled"
        raise LookupError(msg) from None


class RequestState:
    """Attribute namespace that lives as long as one request."""

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        try:
            return _state()[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        _state()[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del _state()[name]
        except KeyError:
            raise AttributeError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in _state()

    def get(self, name: str, default: Any = None) -> Any:
        return _state().get(name, default)


g = RequestState()
