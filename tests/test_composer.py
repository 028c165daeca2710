"""
Composer tests - layout splicing, sections and layout chains
"""

import pytest

from scriptlet.lib.composer import Composer, block_indent, indentation_get
from scriptlet.lib.errors import ResolutionError
from scriptlet.lib.tokenizer import tokenize
from scriptlet.lib.transpiler import transpile
from scriptlet.models.units import ParsedUnit


def unit_of(template, source_path=None):
    return transpile(tokenize(template), source_path=source_path)


class TestCompose:
    """Test merging one content page into one layout page"""

    def test_content_replaces_placeholder(self):
        """The content body takes the place of render_content()"""
        layout = unit_of("<body>{{ Script.render_content() }}</body>", "/site/_layout.html")
        content = unit_of("Hi")

        composed = Composer().compose(content, layout)

        assert composed.body == (
            "writer.write('<body>')\n"
            "writer.write('Hi')\n"
            "writer.write('</body>')\n"
        )
        assert composed.source_path == "/site/_layout.html"

    def test_placeholder_indentation_kept(self):
        """Content spliced into a layout block is indented with it"""
        layout = unit_of("{{% if Model: %}}{{ Script.render_content() }}{{% end %}}")
        content = unit_of("A{{ x }}")

        composed = Composer().compose(content, layout)

        assert composed.body == (
            "if Model:\n"
            "    writer.write('A')\n"
            "    writer.write(x)\n"
        )

    def test_empty_content_keeps_placeholder(self):
        """With no content statements the placeholder keeps the block valid"""
        layout = unit_of("{{% if Model: %}}{{ Script.render_content() }}{{% end %}}")

        composed = Composer().compose(unit_of(""), layout)

        assert composed.body == "if Model:\n    Script.render_content()\n"

    def test_only_first_placeholder_used(self):
        """The content body appears exactly once"""
        layout = unit_of("{{ Script.render_content() }}|{{ Script.render_content() }}")

        composed = Composer().compose(unit_of("C"), layout)

        assert composed.body.count("writer.write('C')") == 1
        assert composed.body.count("Script.render_content()") == 1

    def test_sections_title_and_partials_merged(self):
        """Content sections and title win over the layout's"""
        layout = ParsedUnit(
            body="Script.render_content()\n",
            sections={"a": "writer.write('L')\n", "b": "writer.write('LB')\n"},
            layout="outer.html",
            title="Layout",
        )
        content = ParsedUnit(body="writer.write('c')\n", sections={"a": "writer.write('C')\n"})

        composed = Composer().compose(content, layout)

        assert composed.sections == {"a": "writer.write('C')\n", "b": "writer.write('LB')\n"}
        assert composed.layout == "outer.html"
        assert composed.title == "Layout"

        content.title = "Content"
        assert Composer().compose(content, layout).title == "Content"


class TestSectionsSplice:
    """Test placing captured sections at render_section() placeholders"""

    def test_section_spliced_and_wrapped(self):
        """Spliced code is recorded through Script.section()/end_section()"""
        unit = ParsedUnit(
            body=(
                "writer.write('<t>')\n"
                "Script.render_section('head')\n"
                "Script.render_section('missing')\n"
            ),
            sections={"head": "writer.write('H')\n", "unused": "writer.write('U')\n"},
        )

        body = Composer().sections_splice(unit)

        assert body == (
            "writer.write('<t>')\n"
            "Script.section('head')\n"
            "writer.write('H')\n"
            "Script.end_section('head')\n"
            "Script.render_section('missing')\n"
        )
        assert "'U'" not in body

    def test_section_indentation(self):
        unit = ParsedUnit(
            body="if x:\n    Script.render_section('head')\n",
            sections={"head": "writer.write('H')\n"},
        )

        assert Composer().sections_splice(unit) == (
            "if x:\n"
            "    Script.section('head')\n"
            "    writer.write('H')\n"
            "    Script.end_section('head')\n"
        )


class TestLayoutResolve:
    """Test following a chain of layouts"""

    def test_unit_without_layout(self):
        """A page without a layout is returned as is"""
        unit = unit_of("x")

        assert Composer().layout_resolve(unit, lambda raw, ref: pytest.fail("no load")) is unit

    def test_chained_layouts(self):
        """Each layout is composed into the next one"""
        units = {
            "mid": ParsedUnit(
                body="writer.write('<mid>')\nScript.render_content()\nwriter.write('</mid>')\n",
                layout="root",
                source_path="mid",
            ),
            "root": ParsedUnit(
                body="writer.write('<root>')\nScript.render_content()\nwriter.write('</root>')\n",
                source_path="root",
            ),
        }
        page = ParsedUnit(body="writer.write('page')\n", layout="mid", source_path="page")

        resolved = Composer().layout_resolve(page, lambda raw, ref: units[raw])

        assert resolved.body == (
            "writer.write('<root>')\n"
            "writer.write('<mid>')\n"
            "writer.write('page')\n"
            "writer.write('</mid>')\n"
            "writer.write('</root>')\n"
        )
        assert resolved.layout is None

    def test_layout_cycle(self):
        """A layout that leads back to an earlier page is rejected"""
        units = {
            "a": ParsedUnit(body="Script.render_content()\n", layout="b", source_path="a"),
            "b": ParsedUnit(body="Script.render_content()\n", layout="a", source_path="b"),
        }

        with pytest.raises(ResolutionError, match="cycle"):
            Composer().layout_resolve(units["a"], lambda raw, ref: units[raw])

    def test_layout_depth_limit(self):
        """Chains longer than max_layout_depth are rejected"""

        def loader(raw, referrer):
            return ParsedUnit(body="Script.render_content()\n", layout="next")

        with pytest.raises(ResolutionError, match="exceeds 2 levels"):
            Composer(max_layout_depth=2).layout_resolve(ParsedUnit(body="", layout="next"), loader)

    def test_loader_error_propagates(self):
        def loader(raw, referrer):
            raise ResolutionError(f"Layout page not found: {raw}", path=raw)

        with pytest.raises(ResolutionError) as exc_info:
            Composer().layout_resolve(ParsedUnit(body="", layout="gone.html"), loader)

        assert exc_info.value.path == "gone.html"


class TestHelpers:

    def test_indentation_get(self):
        assert indentation_get("    x = 1") == "    "
        assert indentation_get("x") == ""

    def test_block_indent_skips_blank_lines(self):
        assert block_indent("a\n\nb\n", "  ") == ["  a", "", "  b"]
