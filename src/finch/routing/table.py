"""Per-method route tables.

Insertion order is match priority: the first route whose matcher accepts
the path wins. There is no re-ordering, deduplication or scoring.
"""

from collections.abc import Callable, Iterable, Iterator
from typing import Any

from finch.routing.pattern import PatternSpec, compile_pattern
from finch.routing.route import Method, Route, parse_method


class RouteTable:
    """Ordered routes keyed by HTTP method.

    Usage::

        table = RouteTable()
        table.add([Method.GET], "/users/:id", show_user)
        table.add(ALL_METHODS, "*", log_request)
        for route in table.routes("GET"):
            ...
    """

    __slots__ = ("_routes",)

    def __init__(self) -> None:
        self._routes: dict[Method, list[Route]] = {method: [] for method in Method}

    def add(
        self,
        methods: Iterable[Method | str],
        pattern: PatternSpec,
        handler: Callable[..., Any],
        second_handler: Callable[..., Any] | None = None,
        *,
        ignore_case: bool = False,
    ) -> list[Route]:
        """Append *pattern* to the end of each method's table.

        The pattern is compiled once; every method gets its own ``Route``
        object. Returns the created routes.
        """
        resolved: list[Method] = []
        for value in methods:
            method = parse_method(value)
            if method is None:
                msg = f"Unsupported HTTP method {value!r}"
                raise ValueError(msg)
            resolved.append(method)

        matcher = compile_pattern(pattern, ignore_case=ignore_case)
        created: list[Route] = []
        for method in resolved:
            route = Route(
                method=method,
                pattern=pattern,
                matcher=matcher,
                handler=handler,
                second_handler=second_handler,
            )
            self._routes[method].append(route)
            created.append(route)
        return created

    def routes(self, method: Method | str) -> tuple[Route, ...]:
        """Return the routes for *method* in registration order.

        Unsupported method strings have no routes.
        """
        resolved = parse_method(method)
        if resolved is None:
            return ()
        return tuple(self._routes[resolved])

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())

    def __iter__(self) -> Iterator[Route]:
        for routes in self._routes.values():
            yield from routes
