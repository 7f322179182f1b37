"""Tests for finch.http.response: Response values and ResponseWriter."""

import pytest

from finch.errors import ResponseAlreadySent, TemplateNotFound
from finch.http.response import HTML, JSON, Response, ResponseWriter, to_response
from finch.templating.compiler import compile_source
from finch.templating.registry import TemplateRegistry


class TestResponse:
    def test_defaults(self) -> None:
        response = Response()
        assert response.status == 200
        assert response.content_type == HTML

    def test_chaining_is_immutable(self) -> None:
        base = Response("x")
        changed = base.with_status(201).with_header("X-A", "1")
        assert base.status == 200
        assert base.headers == ()
        assert changed.status == 201
        assert changed.header("x-a") == "1"

    def test_body_conversions(self) -> None:
        assert Response("é").body_bytes == "é".encode()
        assert Response(b"abc").text == "abc"
        assert Response('{"a": 1}').json() == {"a": 1}


class TestToResponse:
    def test_passthrough(self) -> None:
        response = Response("x")
        assert to_response(response) is response

    def test_str_is_html(self) -> None:
        response = to_response("<p>x</p>")
        assert response.content_type == HTML
        assert response.header("Cache-Control") == "no-cache"

    def test_dict_is_json(self) -> None:
        response = to_response({"a": 1})
        assert response.content_type == JSON
        assert response.json() == {"a": 1}

    def test_unsupported(self) -> None:
        with pytest.raises(TypeError):
            to_response(42)


class TestResponseWriter:
    def test_send(self) -> None:
        writer = ResponseWriter()
        assert writer.finished is False
        writer.send("hi", 201)
        assert writer.finished is True
        assert writer.response.status == 201
        assert writer.response.text == "hi"

    def test_json(self) -> None:
        writer = ResponseWriter()
        writer.json([1, 2])
        assert writer.response.content_type == JSON
        assert writer.response.json() == [1, 2]
        assert writer.response.header("cache-control") == "no-cache"

    def test_redirect(self) -> None:
        writer = ResponseWriter()
        writer.redirect("/login")
        assert writer.response.status == 302
        assert writer.response.header("Location") == "/login"

    def test_second_write_fails(self) -> None:
        writer = ResponseWriter()
        writer.send("one")
        with pytest.raises(ResponseAlreadySent):
            writer.send("two")
        with pytest.raises(ResponseAlreadySent):
            writer.header("X-Late", "1")
        assert writer.response.text == "one"

    def test_staged_headers_and_cookies(self) -> None:
        writer = ResponseWriter()
        writer.header("X-Trace", "t1")
        writer.cookie("session", "abc")
        writer.send("ok")
        assert writer.response.header("X-Trace") == "t1"
        (cookie,) = writer.response.cookies
        assert cookie.name == "session"
        assert cookie.secure is True
        assert cookie.httponly is True

    def test_render_without_templates(self) -> None:
        with pytest.raises(RuntimeError, match="No templates"):
            ResponseWriter().render({}, "index")


class TestRender:
    async def test_render_static_and_dynamic(self, tmp_path) -> None:
        (tmp_path / "page.template").write_text('<title render="title">$$t$$</title>')
        registry = TemplateRegistry()
        await registry.load_directory(tmp_path)

        writer = ResponseWriter(templates=registry)
        writer.render({"t": "Home"}, "page")
        assert writer.response.text == "<title>Home</title>"
        assert writer.response.content_type == HTML

        writer = ResponseWriter(templates=registry)
        writer.render({"t": "Home"}, "page", dynamic=True)
        assert writer.response.content_type == JSON
        assert writer.response.json()["title"] == "Home"

    async def test_render_unknown_template(self) -> None:
        writer = ResponseWriter(templates=TemplateRegistry())
        with pytest.raises(TemplateNotFound):
            writer.render({}, "missing")
        assert writer.finished is False

    def test_compiled_renderer_output_is_sendable(self) -> None:
        renderer = compile_source("<p>$$n$$</p>", "t")
        writer = ResponseWriter()
        writer.send(renderer.static({"n": 1}))
        assert writer.response.text == "<p>1</p>"
