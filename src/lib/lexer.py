"""
Custom Pygments lexer for scriptlet template syntax highlighting

Highlights the delimiter markers of a template and the Python code
inside them; everything outside the markers is plain (HTML) text.

Token types:
- Comment.Preproc: Delimiter markers ({{, {{:, {{!, {{%, %}}, }})
- Python tokens: Expression and code block content (via PythonLexer)
- Comment.Multiline: {{@ comment @}} blocks
- Other: Literal template text
"""

import re
from typing import Optional

from pygments import highlight
from pygments.formatter import Formatter
from pygments.formatters import TerminalFormatter
from pygments.lexer import RegexLexer, bygroups, using
from pygments.lexers import PythonLexer
from pygments.token import Comment, Other, String


class ScriptTemplateLexer(RegexLexer):
    """
    Lexer for templates with embedded Python

    Example:
        Hello {{: Model.Name }}!{{% for i in range(3): %}}{{ i }}{{% end %}}

    Tokens:
        Hello     → Other
        {{:       → Comment.Preproc
        Model.Name → Python (Name, Operator, ...)
        }}        → Comment.Preproc
    """

    name = 'Scriptlet Template'
    aliases = ['scriptlet', 'scriptlet-template']
    filenames = ['*.stpl', '*.sptl']

    tokens = {
        'root': [
            # Escaped markers are literal text
            (r'\\\{\{|\\\}\}', String.Escape),

            # {{@ comment @}}
            (r'\{\{@.*?@\}\}', Comment.Multiline),

            # {{% code %}}
            (r'(\{\{%)(.*?)(%\}\})',
             bygroups(Comment.Preproc, using(PythonLexer), Comment.Preproc)),

            # {{: expr }}, {{! expr }}, {{ expr }}
            (r'(\{\{[:!]?)(.*?)(\}\})',
             bygroups(Comment.Preproc, using(PythonLexer), Comment.Preproc)),

            # Everything else is template text
            (r'[^{\\]+', Other),
            (r'[{\\]', Other),
        ],
    }

    flags = re.MULTILINE | re.DOTALL


def get_lexer() -> ScriptTemplateLexer:
    """
    Get the ScriptTemplateLexer instance

    Returns:
        ScriptTemplateLexer instance ready for use with Pygments
    """
    return ScriptTemplateLexer()


def template_highlight(source: str, formatter: Optional[Formatter] = None) -> str:
    """
    Highlight template source (ANSI terminal output by default)

    Args:
        source: Template text
        formatter: Any Pygments formatter (e.g. HtmlFormatter())
    """
    return highlight(source, get_lexer(), formatter or TerminalFormatter())
