"""Shared type aliases used across finch modules."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

# Route handler: called as handler(request, response, next)
Handler: TypeAlias = Callable[..., Any]

# Continuation handed to a handler; resumes the route scan
Next: TypeAlias = Callable[[], Awaitable[Any]]

# Error handler: receives (request, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]
