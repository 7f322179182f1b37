"""Finch exception hierarchy.

Shared across the router, the template compiler, the app and the ASGI
boundary so every module raises and catches the same types.
"""

from dataclasses import dataclass


class FinchError(Exception):
    """Base for all finch-specific errors."""


class ConfigurationError(FinchError):
    """Raised when a route or the app is set up incorrectly.

    Raised at registration time, e.g. for a path pattern that does not
    compile.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(FinchError):
    """An error that maps directly to an HTTP status code.

    Raised by the dispatcher or by handlers. The ASGI handler catches
    these and turns them into a response with the same status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: the route table was exhausted without a response."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class ResponseAlreadySent(FinchError):  # noqa: N818
    """A handler tried to write a response that was already written."""


class TemplateError(FinchError):
    """Base for template compilation and lookup failures."""


class TemplateSyntaxError(TemplateError):
    """The template source could not be compiled.

    Covers unknown ``render`` directives, interpolations that are not
    valid Python expressions, and broken ``script`` code.
    """

    def __init__(self, message: str, template_id: str | None = None) -> None:
        self.template_id = template_id
        if template_id:
            message = f"{template_id}: {message}"
        super().__init__(message)


class TemplateNotFound(TemplateError):  # noqa: N818
    """No source file or no compiled renderer exists for a template id."""
