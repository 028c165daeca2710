"""
Syntax highlighting tests - template lexer and generated code listings
"""

from pygments.formatters import HtmlFormatter
from pygments.token import Comment, Keyword, Name, Other, String

from scriptlet.lib.lexer import ScriptTemplateLexer, get_lexer, template_highlight
from scriptlet.lib.utils import listing_make, textWithLineNumbers_get


def tokens_of(source):
    return list(get_lexer().get_tokens(source))


class TestTemplateLexer:
    """Test token types produced for template text"""

    def test_expression_markers_and_python(self):
        """Markers are preprocessor tokens, the expression is Python"""
        tokens = tokens_of("a{{ x }}")

        assert (Other, "a") in tokens
        assert (Comment.Preproc, "{{") in tokens
        assert (Name, "x") in tokens
        assert (Comment.Preproc, "}}") in tokens

    def test_code_block(self):
        tokens = tokens_of("{{% for i in range(2): %}}")

        assert (Comment.Preproc, "{{%") in tokens
        assert (Keyword, "for") in tokens
        assert (Comment.Preproc, "%}}") in tokens

    def test_encoded_marker(self):
        assert (Comment.Preproc, "{{:") in tokens_of("{{: x }}")

    def test_comment(self):
        assert (Comment.Multiline, "{{@ note @}}") in tokens_of("{{@ note @}}")

    def test_escaped_marker(self):
        assert (String.Escape, "\\{{") in tokens_of("\\{{ x")

    def test_lexer_metadata(self):
        assert ScriptTemplateLexer.name == "Scriptlet Template"
        assert "scriptlet" in ScriptTemplateLexer.aliases

    def test_html_highlight(self):
        assert "<span" in template_highlight("Hi {{ Model }}", HtmlFormatter())


class TestListings:
    """Test generated code listings"""

    def test_line_numbers(self):
        assert textWithLineNumbers_get("a = 1\nb = 2") == "   1. a = 1\n   2. b = 2"

    def test_empty_listing(self):
        assert textWithLineNumbers_get(None) == ""
        assert listing_make("") == ""

    def test_plain_listing(self):
        assert listing_make("x = 1\n", highlight_code=False) == "   1. x = 1"

    def test_highlighted_listing(self):
        listing = listing_make("x = 1\n")

        assert listing.startswith("   1. ")
        assert "x" in listing
