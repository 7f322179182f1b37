"""Finch: a small router and template compiler for HTML services.

Routes are path patterns matched in registration order, with handlers
that hand control on through an explicit continuation. Templates are
markup files with ``render`` directives, compiled once into a static
(HTML string) and a dynamic (structured document) renderer.

Basic usage::

    from finch import App

    app = App()

    @app.get("/hello/:name")
    def hello(request, response, next):
        response.send(f"Hello, {request.path_params['name']}!")

    # any ASGI server: uvicorn module:app
"""

__version__ = "0.1.0-dev"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "FinchError",
    "HTTPError",
    "Method",
    "NotFound",
    "Request",
    "Response",
    "ResponseWriter",
    "TemplateError",
    "TemplateRegistry",
    "TemplateSyntaxError",
    "compile_pattern",
    "compile_source",
    "g",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import finch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from finch.app import App

        return App

    if name == "AppConfig":
        from finch.config import AppConfig

        return AppConfig

    if name == "Request":
        from finch.http.request import Request

        return Request

    if name in ("Response", "ResponseWriter"):
        from finch.http import response as _resp

        return getattr(_resp, name)

    if name == "Method":
        from finch.routing.route import Method

        return Method

    if name == "compile_pattern":
        from finch.routing.pattern import compile_pattern

        return compile_pattern

    if name == "compile_source":
        from finch.templating.compiler import compile_source

        return compile_source

    if name == "TemplateRegistry":
        from finch.templating.registry import TemplateRegistry

        return TemplateRegistry

    if name in ("g", "get_request"):
        from finch import context as _ctx

        return getattr(_ctx, name)

    if name in (
        "ConfigurationError",
        "FinchError",
        "HTTPError",
        "NotFound",
        "TemplateError",
        "TemplateSyntaxError",
    ):
        from finch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
