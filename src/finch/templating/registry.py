"""Compiled template cache, keyed by template id.

An id is registered together with its first successful compilation, so
every registered source maps to exactly one ``CompiledRenderer``.
Recompiling swaps the renderer in a single dict assignment; a failed
compilation leaves the previous renderer in place and propagates to the caller of ``update()``, never to rendering.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import anyio

from finch.errors import TemplateError, TemplateNotFound
from finch.templating.compiler import CompiledRenderer, StructuredDoc, compile_file

logger = logging.getLogger("finch.templates")


class TemplateRegistry:
    """Template sources and their compiled renderers.

    Usage::

        registry = TemplateRegistry()
        await registry.load_directory("templates")
        html = registry.render_static("index", {"user": {"name": "Ann"}})
    """

    __slots__ = ("_autoescape", "_minify", "_renderers", "_sources")

    def __init__(self, *, autoescape: bool = False, minify: bool = True) -> None:
        self._autoescape = autoescape
        self._minify = minify
        self._sources: dict[str, Path] = {}
        self._renderers: dict[str, CompiledRenderer] = {}

    # -- Registration --

    async def register(self, template_id: str, path: str | Path) -> CompiledRenderer:
        """Compile the file at *path* and register it as *template_id*.

        The id is only registered once its first compilation succeeds.
        """
        return await self._compile(template_id, Path(path))

    async def load_directory(
        self,
        root: str | Path,
        *,
        extension: str = ".template",
        template_id: str | None = None,
    ) -> list[str]:
        """Register and compile every ``<id><extension>`` file in *root*.

        With *template_id*, only that template is loaded. Returns the
        loaded ids in sorted order. Raises ``TemplateNotFound`` if *root*
        is not a directory or *template_id* has no file.
        """
        root = Path(root)
        if not root.is_dir():
            msg = f"Template directory not found: {root}"
            raise TemplateNotFound(msg)

        if template_id is not None:
            path = root / f"{template_id}{extension}"
            if not path.is_file():
                msg = f"Template {template_id!r} not found in {root}"
                raise TemplateNotFound(msg)
            paths = [path]
        else:
            paths = sorted(p for p in root.iterdir() if p.is_file() and p.name.endswith(extension))

        sources = {
            (path.name[: -len(extension)] if extension else path.name): path for path in paths
        }
        await self._compile_many(sources)
        logger.info("Loaded %d template(s) from %s", len(sources), root)
        return list(sources)

    # -- Compilation --

    async def update(self, template_id: str) -> CompiledRenderer:
        """Recompile one template and swap it in on success."""
        path = self._sources.get(template_id)
        if path is None:
            msg = f"Unknown template {template_id!r}"
            raise TemplateNotFound(msg)
        return await self._compile(template_id, path)

    async def update_all(self) -> None:
        """Recompile every registered template concurrently.

        Every template is attempted; templates that compile are swapped
        in, and the first failure is re-raised after the rest finish.
        """
        await self._compile_many(dict(self._sources))

    async def _compile(self, template_id: str, path: Path) -> CompiledRenderer:
        renderer = await compile_file(
            path, template_id, autoescape=self._autoescape, minify=self._minify
        )
        self._sources[template_id] = path
        self._renderers[template_id] = renderer
        return renderer

    async def _compile_many(self, sources: dict[str, Path]) -> None:
        failures: list[TemplateError] = []

        async def _one(template_id: str, path: Path) -> None:
            try:
                await self._compile(template_id, path)
            except TemplateError as exc:
                logger.error("Template %s failed to compile: %s", template_id, exc)
                failures.append(exc)

        async with anyio.create_task_group() as tg:
            for template_id, path in sources.items():
                tg.start_soon(_one, template_id, path)

        if failures:
            raise failures[0]

    # -- Lookup and rendering --

    @property
    def ids(self) -> list[str]:
        """Ids of all registered templates, sorted."""
        return sorted(self._sources)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._renderers

    def __len__(self) -> int:
        return len(self._renderers)

    def get(self, template_id: str) -> CompiledRenderer:
        """Return the current renderer for *template_id*."""
        try:
            return self._renderers[template_id]
        except KeyError:
            msg = f"Template {template_id!r} is not compiled"
            raise TemplateNotFound(msg) from None

    def render_static(self, template_id: str, data: Any = None) -> str:
        return self.get(template_id).static(data)

    def render_dynamic(self, template_id: str, data: Any = None) -> StructuredDoc:
        return self.get(template_id).dynamic(data)

    def render(self, data: Any, template_id: str, dynamic: bool = False) -> str | StructuredDoc:
        """Render *template_id* with *data*, statically or dynamically."""
        if dynamic:
            return self.render_dynamic(template_id, data)
        return self.render_static(template_id, data)
