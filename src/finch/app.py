"""Finch application class.

Mutable during setup (route registration, error handlers, templates).
Frozen at runtime when ``__call__()`` is first invoked.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from finch._internal.asgi import Receive, Scope, Send
from finch._internal.invoke import invoke
from finch._internal.types import ErrorHandler, Handler, Next
from finch.config import AppConfig
from finch.errors import TemplateError
from finch.http.request import Request
from finch.http.response import ResponseWriter
from finch.routing.dispatcher import Dispatcher
from finch.routing.pattern import WILDCARD, PatternSpec
from finch.routing.route import ALL_METHODS, Method, Route
from finch.routing.table import RouteTable
from finch.server.handler import handle_request
from finch.templating.registry import TemplateRegistry

logger = logging.getLogger("finch.server")


class App:
    """The finch application.

    Routes are matched per method in registration order. Handlers are
    called as ``handler(request, response, next)``::

        app = App()

        @app.get("/users/:id")
        async def show_user(request, response, next):
            response.render({"id": request.path_params["id"]}, "user")

        app.all("*", not_found_page)

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one caller builds the dispatcher.
    """

    __slots__ = (
        "_dispatcher",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_reload_registered",
        "_shutdown_hooks",
        "_startup_hooks",
        "_table",
        "_templates",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._table = RouteTable()
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._templates: TemplateRegistry | None = None
        self._reload_registered = False
        self._frozen = False
        self._freeze_lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._dispatcher: Dispatcher | None = None

    # -- Route registration --

    def route(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        methods: Iterable[Method | str] = (Method.GET,),
        ignore_case: bool = False,
    ) -> Any:
        """Register a handler for *pattern* under each of *methods*.

        Called with a handler, registers it and returns the created
        routes. Called without one, returns a decorator::

            @app.route("/items/:id", methods=["GET", "HEAD"])
            def item(request, response, next): ...

        Raises ``ConfigurationError`` for a pattern that does not compile
        and ``ValueError`` for an unsupported method.
        """
        methods = tuple(methods)

        def register(func: Handler) -> list[Route]:
            self._check_not_frozen()
            return self._table.add(
                methods, pattern, func, second_handler, ignore_case=ignore_case
            )

        if handler is not None:
            return register(handler)

        def decorator(func: Handler) -> Handler:
            register(func)
            return func

        return decorator

    def get(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register a GET route; a decorator when *handler* is omitted."""
        return self.route(
            pattern, handler, second_handler, methods=(Method.GET,), ignore_case=ignore_case
        )

    def head(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register a HEAD route; a decorator when *handler* is omitted."""
        return self.route(
            pattern, handler, second_handler, methods=(Method.HEAD,), ignore_case=ignore_case
        )

    def post(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register a POST route; a decorator when *handler* is omitted."""
        return self.route(
            pattern, handler, second_handler, methods=(Method.POST,), ignore_case=ignore_case
        )

    def put(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register a PUT route; a decorator when *handler* is omitted."""
        return self.route(
            pattern, handler, second_handler, methods=(Method.PUT,), ignore_case=ignore_case
        )

    def delete(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register a DELETE route; a decorator when *handler* is omitted."""
        return self.route(
            pattern, handler, second_handler, methods=(Method.DELETE,), ignore_case=ignore_case
        )

    def connect(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register a CONNECT route; a decorator when *handler* is omitted."""
        return self.route(
            pattern, handler, second_handler, methods=(Method.CONNECT,), ignore_case=ignore_case
        )

    def options(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register an OPTIONS route; a decorator when *handler* is omitted."""
        return self.route(
            pattern, handler, second_handler, methods=(Method.OPTIONS,), ignore_case=ignore_case
        )

    def trace(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register a TRACE route; a decorator when *handler* is omitted."""
        return self.route(
            pattern, handler, second_handler, methods=(Method.TRACE,), ignore_case=ignore_case
        )

    def patch(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register a PATCH route; a decorator when *handler* is omitted."""
        return self.route(
            pattern, handler, second_handler, methods=(Method.PATCH,), ignore_case=ignore_case
        )

    def all(
        self,
        pattern: PatternSpec,
        handler: Handler | None = None,
        second_handler: Handler | None = None,
        *,
        ignore_case: bool = False,
    ) -> Any:
        """Register a route under every method, one route per method."""
        return self.route(
            pattern, handler, second_handler, methods=ALL_METHODS, ignore_case=ignore_case
        )

    @property
    def routes(self) -> RouteTable:
        """The route table, in registration order per method."""
        return self._table

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Templates --

    async def templates(
        self,
        root: str | Path | None = None,
        *,
        extension: str | None = None,
        template_id: str | None = None,
        development_mode: bool | None = None,
    ) -> TemplateRegistry:
        """Load and compile the templates in *root*.

        Every ``<id><extension>`` file becomes a template keyed by its
        stem; with *template_id* only that file is loaded. In development
        mode a route is appended under every method that recompiles all
        templates before handing the request on, so routes registered
        before this call are not affected by recompilation.

        Compilation failures propagate; the app is unchanged for any
        template that failed.
        """
        self._check_not_frozen()
        root = root if root is not None else self.config.template_dir
        extension = extension if extension is not None else self.config.template_extension
        if development_mode is None:
            development_mode = self.config.template_reload

        if self._templates is None:
            self._templates = TemplateRegistry(
                autoescape=self.config.autoescape,
                minify=self.config.minify,
            )
        await self._templates.load_directory(root, extension=extension, template_id=template_id)

        if development_mode and not self._reload_registered:
            self.all(WILDCARD, self._reload_templates)
            self._reload_registered = True
            logger.info("Template development mode: recompiling before every request")
        return self._templates

    @property
    def template_registry(self) -> TemplateRegistry | None:
        """The loaded templates, or None before ``templates()`` is called."""
        return self._templates

    async def _reload_templates(
        self, request: Request, response: ResponseWriter, next: Next
    ) -> Any:
        assert self._templates is not None
        try:
            await self._templates.update_all()
        except TemplateError:
            logger.warning("Serving previously compiled templates for %s", request.path)
        return await next()

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    async def startup(self) -> None:
        """Freeze the app and run the startup hooks in registration order."""
        self._ensure_frozen()
        for hook in self._startup_hooks:
            await invoke(hook)

    async def shutdown(self) -> None:
        """Run the shutdown hooks in registration order."""
        for hook in self._shutdown_hooks:
            await invoke(hook)

    # -- ASGI --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        assert self._dispatcher is not None

        await handle_request(
            scope,
            receive,
            send,
            dispatcher=self._dispatcher,
            templates=self._templates,
            error_handlers=self._error_handlers,
            config=self.config,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Build the runtime dispatcher. MUST hold _freeze_lock."""
        self._dispatcher = Dispatcher(self._table)
        self._frozen = True
        logger.debug("App frozen with %d route(s)", len(self._table))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, error handlers and templates before the first request."
            )
            raise RuntimeError(msg)
