"""Runtime helpers injected into the namespace of compiled templates.

Compiled renderers never touch ``data`` directly for name or attribute
access; they call these helpers, so dicts and objects can be used
interchangeably (``user.name`` works for ``{"user": {"name": "Ann"}}``).

All helpers are pure functions and safe for concurrent use.
"""

import builtins
import html
from collections.abc import Mapping
from typing import Any


def to_str(value: Any) -> str:
    """Stringify an interpolated value; ``None`` renders as nothing."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def escape(value: Any) -> str:
    """Stringify and HTML-escape an interpolated value."""
    return html.escape(to_str(value))


def lookup(data: Any, name: str) -> Any:
    """Resolve a free name of template code.

    The render data wins; names it does not define fall back to
    builtins, so ``len(items)`` works and a data key ``id`` shadows the
    builtin ``id``. Anything else resolves to ``None``.
    """
    if isinstance(data, Mapping):
        if name in data:
            return data[name]
    elif data is not None and hasattr(data, name):
        return getattr(data, name)
    return getattr(builtins, name, None)


def safe_getattr(obj: Any, name: str) -> Any:
    """Get attribute with dict fallback.

    Resolution order:
    - Dicts: subscript first (user data), getattr fallback (methods), so
      keys like ``items`` resolve to user data, not ``dict.items``.
    - Objects: getattr first, subscript fallback.

    Missing names resolve to ``None``, which renders as an empty string.
    """
    if obj is None:
        return None
    if isinstance(obj, dict):
        try:
            return obj[name]
        except KeyError:
            return getattr(obj, name, None)
    try:
        return getattr(obj, name)
    except AttributeError:
        try:
            return obj[name]
        except (KeyError, TypeError, IndexError):
            return None


HELPERS: dict[str, Any] = {
    "_str": to_str,
    "_escape": escape,
    "_lookup": lookup,
    "_getattr": safe_getattr,
}

RESERVED_NAMES: frozenset[str] = frozenset({*HELPERS, "data"})
"""Names compiled template code never resolves against ``data``."""

FRAGMENT_NAMES: frozenset[str] = frozenset({"template"})
"""Locals of every ``script[template]`` function, reserved inside its body only."""


def new_namespace() -> dict[str, Any]:
    """Return a fresh module namespace for one compiled template."""
    return {"__builtins__": builtins, "__name__": "finch.template", **HELPERS}
