"""
End-to-end rendering tests - templates in, text out

Tests complete renders through ScriptParser: loops and conditionals,
output encoding, layouts with sections, chained layouts, file renders
and error reporting.
"""

from types import SimpleNamespace

import pytest

from scriptlet.config.settings import AppSettings
from scriptlet.lib.errors import ErrorKind, ParseError
from scriptlet.lib.parser import ScriptParser
from scriptlet.lib.partials import DictReader


HELLO = "Hello {{ Model.Name }}! {{% for i in range(1, 3): %}}{{ i }}. Hi {{% end %}}"


class TestBasicRendering:
    """Test expressions, loops and conditionals"""

    def test_hello_loop(self, parser):
        """Literal whitespace is preserved around expressions and blocks"""
        assert parser.execute_script(HELLO, SimpleNamespace(Name="Sam")) == "Hello Sam! 1. Hi 2. Hi "
        assert not parser.error

    def test_repeat_render_compiles_once(self, parser, compiler):
        """Rendering the same template again reuses the compiled artifact"""
        first = parser.execute_script(HELLO, SimpleNamespace(Name="Sam"))
        second = parser.execute_script(HELLO, SimpleNamespace(Name="Sam"))

        assert first == second
        assert compiler.count == 1

    def test_model_per_render(self, parser):
        """The model is a parameter, so one artifact renders any model"""
        assert parser.execute_script(HELLO, SimpleNamespace(Name="Rick")).startswith("Hello Rick!")

    def test_if_else(self, parser):
        template = "{{% if Model: %}}yes{{% else: %}}no{{% end %}}"

        assert parser.execute_script(template, True) == "yes"
        assert parser.execute_script(template, False) == "no"

    def test_code_only_lines_leave_no_blank_lines(self, parser):
        template = "{{% for i in range(2): %}}\n{{ i }}\n{{% end %}}\n"

        assert parser.execute_script(template) == "0\n1\n"

    def test_local_function(self, parser):
        """Code blocks can define helpers used later in the template"""
        template = "{{%\ndef shout(s):\n    return s.upper() + '!'\n%}}{{ shout(Model) }}"

        assert parser.execute_script(template, "hi") == "HI!"

    def test_comments_render_nothing(self, parser):
        assert parser.execute_script("a{{@ hidden {{ Model }} @}}b", 1) == "ab"

    def test_escaped_markers(self, parser):
        assert parser.execute_script(r"\{{ Model \}} = {{ Model }}", 1) == "{{ Model }} = 1"

    def test_additional_method_header_code(self, engine):
        parser = ScriptParser(engine=engine, additional_method_header_code="greeting = 'Hey'")

        assert parser.execute_script("{{ greeting }} {{ Model }}", "Sam") == "Hey Sam"

    def test_inline_clauses(self, parser):
        """`elif x: stmt` and `else: pass` keep the block open until end"""
        template = (
            "{{% if Model == 1: %}}one"
            "{{% elif Model == 2: label = 'two' %}}{{ label }}"
            "{{% else: pass %}}other{{% end %}}"
        )

        assert [parser.execute_script(template, n) for n in (1, 2, 3)] == ["one", "two", "other"]

    def test_inline_except(self, parser):
        template = "{{% try: %}}{{ 1 // Model }}{{% except ZeroDivisionError: result = 'div' %}}{{ result }}{{% end %}}"

        assert parser.execute_script(template, 0) == "div"
        assert parser.execute_script(template, 1) == "1"


class TestMultilineStrings:
    """Test that string literals spanning lines render unchanged"""

    def test_string_in_code_block(self, parser):
        assert parser.execute_script('{{% s = """a\nb""" %}}{{ s }}') == "a\nb"

    def test_string_inside_for_block(self, parser):
        template = '{{% for i in range(1): %}}{{% s = """a\nb""" %}}{{ s }}{{% end %}}'

        assert parser.execute_script(template) == "a\nb"

    def test_string_in_expression(self, parser):
        assert parser.execute_script('[{{ """x\n  y""" }}]') == "[x\n  y]"

    def test_string_in_content_spliced_into_layout(self, engine):
        """Splicing into an indented placeholder leaves string lines alone"""
        parser = ScriptParser(engine=engine, reader=DictReader({
            "/m/l.html": "{{% if True: %}}<{{ Script.render_content() }}>{{% end %}}",
            "/m/p.html": '{{% Script.layout = "l.html" %}}{{% s = """a\n  b""" %}}{{ s }}',
        }))

        assert parser.execute_script_file("/m/p.html") == "<a\n  b>"


class TestEncoding:
    """Test HTML encoding of expression output"""

    def test_encoded_and_raw_markers(self, parser):
        assert parser.execute_script("{{: Model }}", "Rick & Dale") == "Rick &amp; Dale"
        assert parser.execute_script("{{! Model }}", "Rick & Dale") == "Rick & Dale"
        assert parser.execute_script("{{ Model }}", "Rick & Dale") == "Rick & Dale"

    def test_quotes_encoded(self, parser):
        assert parser.execute_script("{{: Model }}", "\"a\" 'b'") == "&quot;a&quot; &#x27;b&#x27;"

    def test_encode_by_default(self, parser):
        """With encoding on by default only {{! }} writes raw"""
        parser.html_encode_by_default = True

        assert parser.html_encode_by_default
        assert parser.execute_script("{{ Model }}|{{! Model }}", "<b>") == "&lt;b&gt;|<b>"

    def test_encode_by_default_from_settings(self, engine):
        parser = ScriptParser(engine=engine, settings=AppSettings(html_encode_by_default=True))

        assert parser.execute_script("{{ Model }}", "<") == "&lt;"

    def test_raw_helper(self, parser):
        """Script.raw() output is never encoded"""
        assert parser.execute_script("{{: Script.raw(Model) }}", "<i>") == "<i>"

    def test_none_renders_empty(self, parser):
        assert parser.execute_script("[{{ Model }}][{{: Model }}]", None) == "[][]"


class TestLayouts:
    """Test layout pages, sections and titles"""

    def test_layout_with_section_and_title(self, site_parser):
        """The content title reaches the layout and the body appears once"""
        result = site_parser.execute_script_file("/site/page.html")

        assert result == "<html><head><title>X</title></head><body>\n<p>Body</p></body></html>"
        assert result.count("<p>Body</p>") == 1

    def test_layout_from_string_script(self, site_parser):
        """String scripts resolve layouts against the base path"""
        result = site_parser.execute_script('{{% Script.layout = "_layout.html" %}}Hi', base_path="/site")

        assert result == "<html><head><title></title></head><body>Hi</body></html>"

    def test_section_rendered_into_layout(self, engine):
        parser = ScriptParser(engine=engine, reader=DictReader({
            "/s/l.html": "<h>{{ Script.render_section('head') }}</h>{{ Script.render_content() }}",
            "/s/p.html": (
                "{{% Script.layout = 'l.html' %}}"
                "{{ Script.section('head') }}<meta>{{ Model }}{{ Script.end_section('head') }}"
                "body"
            ),
        }))

        assert parser.execute_script_file("/s/p.html", "m") == "<h><meta>m</h>body"

    def test_missing_and_unused_sections(self, engine):
        """Undeclared sections render nothing; unplaced ones are dropped"""
        parser = ScriptParser(engine=engine, reader=DictReader({
            "/s/l.html": "[{{ Script.render_section('missing') }}]{{ Script.render_content() }}",
            "/s/p.html": (
                "{{% Script.layout = 'l.html' %}}"
                "{{ Script.section('unused') }}U{{ Script.end_section('unused') }}C"
            ),
        }))

        assert parser.execute_script_file("/s/p.html") == "[]C"

    def test_chained_layouts(self, engine):
        parser = ScriptParser(engine=engine, reader=DictReader({
            "/c/page.html": "{{% Script.layout = 'mid.html' %}}page",
            "/c/mid.html": "{{% Script.layout = 'root.html' %}}<mid>{{ Script.render_content() }}</mid>",
            "/c/root.html": "<root>{{ Script.render_content() }}</root>",
        }))

        assert parser.execute_script_file("/c/page.html") == "<root><mid>page</mid></root>"

    def test_missing_layout(self, engine):
        parser = ScriptParser(engine=engine, reader=DictReader({
            "/m/page.html": "{{% Script.layout = 'nope.html' %}}x",
        }))

        assert parser.execute_script_file("/m/page.html") is None
        assert parser.error_type == ErrorKind.RESOLUTION
        assert "Layout page not found: /m/nope.html" in parser.error_message

    def test_layout_cycle(self, engine):
        parser = ScriptParser(engine=engine, reader=DictReader({
            "/y/a.html": "{{% Script.layout = 'b.html' %}}a{{ Script.render_content() }}",
            "/y/b.html": "{{% Script.layout = 'a.html' %}}b{{ Script.render_content() }}",
        }))

        assert parser.execute_script_file("/y/a.html") is None
        assert parser.error_type == ErrorKind.RESOLUTION
        assert "cycle" in parser.error_message


class TestFiles:
    """Test renders of template files on disk"""

    def test_file_with_rooted_partial(self, parser, tmp_path):
        (tmp_path / "views").mkdir()
        (tmp_path / "shared").mkdir()
        page = tmp_path / "views" / "page.html"
        page.write_text("<{{ Script.render_partial('~/shared/nav.html', 'N') }}>", encoding="utf-8")
        (tmp_path / "shared" / "nav.html").write_text("{{ Model }}", encoding="utf-8")

        assert parser.execute_script_file(str(page), base_path=str(tmp_path)) == "<N>"

    def test_base_path_defaults_to_file_directory(self, parser, tmp_path):
        page = tmp_path / "page.html"
        page.write_text("[{{ Script.render_partial('~/nav.html') }}]", encoding="utf-8")
        (tmp_path / "nav.html").write_text("nav", encoding="utf-8")

        assert parser.execute_script_file(str(page)) == "[nav]"

    def test_missing_file(self, parser, tmp_path):
        assert parser.execute_script_file(str(tmp_path / "nope.html")) is None
        assert parser.error_type == ErrorKind.RESOLUTION
        assert "Template not found" in parser.error_message


class TestErrorsAndInspection:
    """Test error kinds and generated code inspection from the parser"""

    def test_parse_error(self, parser):
        assert parser.execute_script("Hello {{ Model") is None
        assert parser.error
        assert parser.error_type == ErrorKind.PARSE

    def test_parse_error_raised(self, parser):
        parser.throw_exceptions = True

        with pytest.raises(ParseError):
            parser.execute_script("Hello {{ Model")

    def test_runtime_error(self, parser):
        assert parser.execute_script("{{ Model.missing }}", object()) is None
        assert parser.error_type == ErrorKind.RUNTIME
        assert isinstance(parser.last_exception, AttributeError)

    def test_error_cleared_by_next_render(self, parser):
        parser.execute_script("{{ Model.missing }}", object())

        assert parser.execute_script("ok") == "ok"
        assert not parser.error

    def test_parse_script_to_code(self, parser, compiler):
        """Transpiling alone never compiles"""
        assert parser.parse_script_to_code("Hi {{ x }}") == "writer.write('Hi ')\nwriter.write(x)\n"
        assert compiler.count == 0

    def test_parse_script_to_code_error(self, parser):
        assert parser.parse_script_to_code("{{% if x: %}}") is None
        assert parser.error_type == ErrorKind.PARSE

    def test_generated_code_available(self, parser):
        parser.execute_script("{{ Model }}", 1)

        assert "Model = parameters[0]" in parser.generated_class_code
        assert "return writer.getvalue()" in parser.generated_class_code
        assert parser.generated_class_code_with_line_numbers.startswith("   1. ")
