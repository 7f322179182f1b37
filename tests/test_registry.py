"""Tests for finch.templating.registry: compiled template cache."""

import pytest

from finch.errors import TemplateNotFound, TemplateSyntaxError
from finch.templating.registry import TemplateRegistry


@pytest.fixture
def template_dir(tmp_path):
    (tmp_path / "index.template").write_text(
        '<title render="title">Hello $$user.name$$</title><p>$$user.name$$</p>'
    )
    (tmp_path / "about.template").write_text("<p>about</p>")
    (tmp_path / "notes.txt").write_text("not a template")
    return tmp_path


class TestLoading:
    async def test_load_directory(self, template_dir) -> None:
        registry = TemplateRegistry()
        ids = await registry.load_directory(template_dir)
        assert ids == ["about", "index"]
        assert registry.ids == ["about", "index"]
        assert "index" in registry
        assert "notes" not in registry
        assert len(registry) == 2

    async def test_custom_extension(self, template_dir) -> None:
        registry = TemplateRegistry()
        ids = await registry.load_directory(template_dir, extension=".txt")
        assert ids == ["notes"]

    async def test_single_template(self, template_dir) -> None:
        registry = TemplateRegistry()
        ids = await registry.load_directory(template_dir, template_id="about")
        assert ids == ["about"]
        assert "index" not in registry

    async def test_single_template_missing(self, template_dir) -> None:
        registry = TemplateRegistry()
        with pytest.raises(TemplateNotFound, match="nope"):
            await registry.load_directory(template_dir, template_id="nope")

    async def test_missing_directory(self, tmp_path) -> None:
        registry = TemplateRegistry()
        with pytest.raises(TemplateNotFound):
            await registry.load_directory(tmp_path / "missing")

    async def test_failed_register_is_not_recorded(self, tmp_path) -> None:
        (tmp_path / "bad.template").write_text('<p render="nope"></p>')
        registry = TemplateRegistry()
        with pytest.raises(TemplateSyntaxError):
            await registry.register("bad", tmp_path / "bad.template")
        assert registry.ids == []
        with pytest.raises(TemplateNotFound):
            await registry.update("bad")

    async def test_register(self, template_dir) -> None:
        registry = TemplateRegistry()
        renderer = await registry.register("home", template_dir / "about.template")
        assert renderer.template_id == "home"
        assert registry.render_static("home") == "<p>about</p>"

    async def test_load_failure_propagates(self, tmp_path) -> None:
        (tmp_path / "good.template").write_text("<p>ok</p>")
        (tmp_path / "bad.template").write_text('<p render="nope"></p>')
        registry = TemplateRegistry()
        with pytest.raises(TemplateSyntaxError, match="bad"):
            await registry.load_directory(tmp_path)
        assert "good" in registry
        assert "bad" not in registry
        assert registry.ids == ["good"]


class TestRendering:
    async def test_render_static(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        html = registry.render_static("index", {"user": {"name": "Ann"}})
        assert html == "<title>Hello Ann</title><p>Ann</p>"

    async def test_render_dynamic(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        doc = registry.render({"user": {"name": "Ann"}}, "index", dynamic=True)
        assert doc["title"] == "Hello Ann"

    async def test_render_dispatches_on_flag(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        assert registry.render({}, "about") == "<p>about</p>"
        assert isinstance(registry.render({}, "about", True), dict)

    async def test_unknown_id(self) -> None:
        registry = TemplateRegistry()
        with pytest.raises(TemplateNotFound):
            registry.render_static("missing", {})
        with pytest.raises(TemplateNotFound):
            await registry.update("missing")

    async def test_autoescape(self, tmp_path) -> None:
        (tmp_path / "x.template").write_text("<p>$$v$$</p>")
        registry = TemplateRegistry(autoescape=True)
        await registry.load_directory(tmp_path)
        assert registry.render_static("x", {"v": "<i>"}) == "<p>&lt;i&gt;</p>"


class TestRecompilation:
    async def test_update_picks_up_changes(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        (template_dir / "about.template").write_text("<p>changed</p>")
        assert registry.render_static("about") == "<p>about</p>"
        await registry.update("about")
        assert registry.render_static("about") == "<p>changed</p>"

    async def test_failed_update_keeps_previous_renderer(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        previous = registry.get("about")
        (template_dir / "about.template").write_text('<p render="bogus"></p>')
        with pytest.raises(TemplateSyntaxError, match=r"unknown render type \[bogus\]"):
            await registry.update("about")
        assert registry.get("about") is previous
        assert registry.render_static("about") == "<p>about</p>"

    async def test_held_renderer_survives_swap(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        held = registry.get("about")
        (template_dir / "about.template").write_text("<p>new</p>")
        await registry.update("about")
        assert held.static({}) == "<p>about</p>"
        assert registry.get("about") is not held

    async def test_update_all(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        (template_dir / "about.template").write_text("<p>v2</p>")
        (template_dir / "index.template").write_text("<p>i2</p>")
        await registry.update_all()
        assert registry.render_static("about") == "<p>v2</p>"
        assert registry.render_static("index") == "<p>i2</p>"

    async def test_update_all_reraises_after_updating_the_rest(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        (template_dir / "about.template").write_text('<p render="bogus"></p>')
        (template_dir / "index.template").write_text("<p>i2</p>")
        with pytest.raises(TemplateSyntaxError):
            await registry.update_all()
        assert registry.render_static("about") == "<p>about</p>"
        assert registry.render_static("index") == "<p>i2</p>"

    async def test_update_deleted_file(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        (template_dir / "about.template").unlink()
        with pytest.raises(TemplateNotFound):
            await registry.update("about")
        assert registry.render_static("about") == "<p>about</p>"

    async def test_update_all_with_invalid_utf8(self, template_dir) -> None:
        registry = TemplateRegistry()
        await registry.load_directory(template_dir)
        (template_dir / "about.template").write_bytes(b"<p>\xff\xfe</p>")
        with pytest.raises(TemplateSyntaxError, match="about: not valid UTF-8"):
            await registry.update_all()
        assert registry.render_static("about") == "<p>about</p>"
