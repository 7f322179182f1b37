"""Tests for finch.templating.compiler: static and dynamic renderers."""

import json
from types import SimpleNamespace

import pytest

from finch.errors import TemplateError, TemplateNotFound, TemplateSyntaxError
from finch.templating.compiler import compile_file, compile_source

LIST_TEMPLATE = """\
<ul><script template>
for item in items:
    template += '<li>' + item + '</li>'
</script></ul>"""


class TestStaticRender:
    def test_plain_markup(self) -> None:
        renderer = compile_source("<p>hello</p>", "t")
        assert renderer.static({}) == "<p>hello</p>"

    def test_interpolation(self) -> None:
        renderer = compile_source("<p>$$greeting$$, $$name$$!</p>", "t")
        assert renderer.static({"greeting": "Hi", "name": "Bo"}) == "<p>Hi, Bo!</p>"

    def test_title_is_inlined(self) -> None:
        renderer = compile_source('<title render="title">Hello $$user.name$$</title>', "t")
        assert renderer.static({"user": {"name": "Ann"}}) == "<title>Hello Ann</title>"

    def test_missing_values_render_empty(self) -> None:
        renderer = compile_source("<p>[$$missing.deeper$$]</p>", "t")
        assert renderer.static({}) == "<p>[]</p>"

    def test_none_data(self) -> None:
        renderer = compile_source("<p>$$x$$</p>", "t")
        assert renderer.static(None) == "<p></p>"

    def test_object_data(self) -> None:
        renderer = compile_source("<p>$$user.name$$</p>", "t")
        data = SimpleNamespace(user=SimpleNamespace(name="Ann"))
        assert renderer.static(data) == "<p>Ann</p>"

    def test_python_expressions(self) -> None:
        renderer = compile_source("<p>$$len(items)$$/$$items[0].upper()$$</p>", "t")
        assert renderer.static({"items": ["a", "b"]}) == "<p>2/A</p>"

    def test_entities_in_expressions(self) -> None:
        renderer = compile_source("<p>$$a&lt;b$$</p>", "t")
        assert renderer.static({"a": 1, "b": 2}) == "<p>True</p>"

    def test_attribute_interpolation(self) -> None:
        renderer = compile_source('<a href="/u/$$uid$$">x</a>', "t")
        assert renderer.static({"uid": 7}) == '<a href="/u/7">x</a>'

    def test_no_escaping_by_default(self) -> None:
        renderer = compile_source("<div>$$html$$</div>", "t")
        assert renderer.static({"html": "<b>x</b>"}) == "<div><b>x</b></div>"

    def test_autoescape(self) -> None:
        renderer = compile_source("<div>$$html$$</div>", "t", autoescape=True)
        assert renderer.static({"html": "<b>x</b>"}) == "<div>&lt;b&gt;x&lt;/b&gt;</div>"

    def test_template_is_an_ordinary_data_name(self) -> None:
        renderer = compile_source("<p>$$template$$</p>", "t")
        assert renderer.static({"template": "hi"}) == "<p>hi</p>"
        assert renderer.static({}) == "<p></p>"

    def test_fragment_reads_its_own_template(self) -> None:
        source = "<p><script template>\nx = template\ntemplate = x + '!'\n</script></p>"
        renderer = compile_source(source, "t")
        assert renderer.static({"template": "ignored"}) == "<p>!</p>"


class TestScripts:
    def test_static_script_helpers(self) -> None:
        source = "<script static>\ndef shout(s):\n    return s.upper()\n</script><p>$$shout(name)$$</p>"
        renderer = compile_source(source, "t")
        assert renderer.static({"name": "ann"}) == "<p>ANN</p>"

    def test_template_fragment(self) -> None:
        renderer = compile_source(LIST_TEMPLATE, "t")
        assert renderer.static({"items": ["a", "b"]}) == "<ul><li>a</li><li>b</li></ul>"

    def test_empty_fragment(self) -> None:
        renderer = compile_source("<p><script template></script></p>", "t")
        assert renderer.static({}) == "<p></p>"

    def test_fragment_uses_static_helpers(self) -> None:
        source = (
            "<script static>\nSEP = '|'\n</script>"
            "<p><script template>\ntemplate = SEP.join(words)\n</script></p>"
        )
        renderer = compile_source(source, "t")
        assert renderer.static({"words": ["a", "b"]}) == "<p>a|b</p>"

    def test_fragment_output_is_not_escaped(self) -> None:
        renderer = compile_source(LIST_TEMPLATE, "t", autoescape=True)
        assert renderer.static({"items": ["a"]}) == "<ul><li>a</li></ul>"


class TestDynamicRender:
    def test_empty_document(self) -> None:
        renderer = compile_source("<p>x</p>", "t")
        assert renderer.dynamic({}) == {
            "title": "",
            "head": [],
            "body": [],
            "attr": [],
            "exec": [],
        }

    def test_title(self) -> None:
        renderer = compile_source('<title render="title">Hello $$user.name$$</title>', "t")
        assert renderer.dynamic({"user": {"name": "Ann"}})["title"] == "Hello Ann"

    def test_head(self) -> None:
        renderer = compile_source(
            '<meta render="head" property="og:title" content="$$desc$$">', "t"
        )
        assert renderer.dynamic({"desc": "About"})["head"] == [
            {
                "tag": "meta",
                "attrs": [
                    {"attr": "property", "val": "og:title"},
                    {"attr": "content", "val": "About"},
                ],
            }
        ]

    def test_body(self) -> None:
        renderer = compile_source(
            '<div render="body" id="main" class="$$theme$$"><b>$$name$$</b></div>', "t"
        )
        assert renderer.dynamic({"theme": "dark", "name": "Ann"})["body"] == [
            {
                "id": "main",
                "name": None,
                "content": "<b>Ann</b>",
                "attrs": [{"attr": "class", "val": "dark"}],
            }
        ]

    def test_body_with_fragment(self) -> None:
        source = '<div render="body" id="list" name="items">' + LIST_TEMPLATE + "</div>"
        renderer = compile_source(source, "t")
        (body,) = renderer.dynamic({"items": ["x"]})["body"]
        assert body["name"] == "items"
        assert body["content"] == "<ul><li>x</li></ul>"

    def test_attr(self) -> None:
        renderer = compile_source('<span render="attr" id="counter" data-n="$$n$$"></span>', "t")
        assert renderer.dynamic({"n": 3})["attr"] == [
            {"id": "counter", "attrs": [{"attr": "data-n", "val": "3"}]}
        ]

    def test_exec(self) -> None:
        renderer = compile_source("<script render=\"exec\">start('$$page$$')</script>", "t")
        assert renderer.dynamic({"page": "home"})["exec"] == ["start('home')"]

    def test_result_is_json_serializable(self) -> None:
        source = (
            '<title render="title">$$t$$</title>'
            '<div render="body" id="m">$$t$$</div>'
            '<span render="attr" id="m" class="c"></span>'
        )
        doc = compile_source(source, "t").dynamic({"t": "x"})
        assert json.loads(json.dumps(doc)) == doc

    def test_static_and_dynamic_agree(self) -> None:
        source = '<div render="body" id="m"><i>$$v$$</i></div>'
        renderer = compile_source(source, "t")
        assert renderer.static({"v": 1}) == '<div id="m"><i>1</i></div>'
        assert renderer.dynamic({"v": 1})["body"][0]["content"] == "<i>1</i>"


class TestErrors:
    def test_unknown_directive(self) -> None:
        with pytest.raises(TemplateSyntaxError, match=r"page: unknown render type \[footer\]"):
            compile_source('<div render="footer"></div>', "page")

    def test_invalid_expression(self) -> None:
        with pytest.raises(TemplateSyntaxError, match="page: invalid expression"):
            compile_source("<p>$$a+$$</p>", "page")

    def test_invalid_fragment_code(self) -> None:
        with pytest.raises(TemplateSyntaxError):
            compile_source("<p><script template>for :</script></p>", "page")

    def test_invalid_static_script(self) -> None:
        with pytest.raises(TemplateSyntaxError, match="invalid static script"):
            compile_source("<script static>def (</script>", "page")

    def test_failing_static_script(self) -> None:
        with pytest.raises(TemplateError, match="static script failed"):
            compile_source("<script static>raise ValueError('boom')</script>", "page")


class TestCompileFile:
    async def test_id_defaults_to_stem(self, tmp_path) -> None:
        path = tmp_path / "index.template"
        path.write_text("<p>$$x$$</p>")
        renderer = await compile_file(path)
        assert renderer.template_id == "index"
        assert renderer.static({"x": 1}) == "<p>1</p>"

    async def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(TemplateNotFound):
            await compile_file(tmp_path / "missing.template")

    async def test_generated_source_is_kept(self, tmp_path) -> None:
        path = tmp_path / "page.template"
        path.write_text("<p>$$x$$</p>")
        renderer = await compile_file(path)
        assert "def render_static(data):" in renderer.source
        assert "def render_dynamic(data):" in renderer.source

    async def test_invalid_utf8(self, tmp_path) -> None:
        path = tmp_path / "page.template"
        path.write_bytes(b"<p>\xff\xfe</p>")
        with pytest.raises(TemplateSyntaxError, match="page: not valid UTF-8"):
            await compile_file(path)
