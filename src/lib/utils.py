"""
Small helpers shared by the engine and the parser facade
"""

import io
import os
import re
import secrets
import string
import tokenize
from typing import Optional, Set

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import PythonLexer

_ID_ALPHABET = string.ascii_lowercase + string.digits

_MARGIN = re.compile(r'[ \t]*')

# f-string/t-string delimiting tokens (interpreter dependent)
_STRING_STARTS = {getattr(tokenize, name) for name in ("FSTRING_START", "TSTRING_START") if hasattr(tokenize, name)}
_STRING_ENDS = {getattr(tokenize, name) for name in ("FSTRING_END", "TSTRING_END") if hasattr(tokenize, name)}


def uniqueId_generate(length: int = 8) -> str:
    """
    Short random identifier usable in a Python class name

    Example:
        >>> len(uniqueId_generate())
        8
    """
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def stringLines_find(code: str) -> Set[int]:
    '''
    Indexes (into code.splitlines()) of lines that begin inside a string

    The continuation lines of a multi-line string literal are string
    content: re-indenting generated source must leave them alone.
    Leading whitespace does not change where strings start and end, so
    lines are tokenized flush left and fragments with no consistent
    indentation (a lone `else:`) scan cleanly. Scanning stops at the
    first tokenizer error; lines found up to there are returned.

    Example:
        >>> stringLines_find('s = """a\\nb\\nc"""\\nt = 1')
        {1, 2}
    '''
    flat = "\n".join(line.lstrip() for line in code.splitlines())
    inside: Set[int] = set()
    opened = []
    try:
        for token in tokenize.generate_tokens(io.StringIO(flat).readline):
            if token.type == tokenize.STRING:
                inside.update(range(token.start[0], token.end[0]))
            elif token.type in _STRING_STARTS:
                opened.append(token.start[0])
            elif token.type in _STRING_ENDS and opened:
                inside.update(range(opened.pop(), token.end[0]))
    except (tokenize.TokenError, SyntaxError):
        pass
    return inside


def source_indent(code: str, prefix: str, inside: Optional[Set[int]] = None) -> str:
    """
    textwrap.indent() for Python source: lines inside string literals
    and blank lines are left as they are

    Args:
        code: Python source
        prefix: Text added in front of each line
        inside: Precomputed stringLines_find(code)
    """
    inside = stringLines_find(code) if inside is None else inside
    return "\n".join(
        line if index in inside or not line.strip() else prefix + line
        for index, line in enumerate(code.splitlines())
    )


def source_dedent(code: str, inside: Optional[Set[int]] = None) -> str:
    """
    textwrap.dedent() for Python source

    The common margin is taken from code lines only; string continuation
    lines keep their text.
    """
    inside = stringLines_find(code) if inside is None else inside
    lines = code.splitlines()
    margins = [
        _MARGIN.match(line).group()
        for index, line in enumerate(lines)
        if index not in inside and line.strip()
    ]
    width = len(os.path.commonprefix(margins)) if margins else 0

    dedented = []
    for index, line in enumerate(lines):
        if index in inside:
            dedented.append(line)
        elif line.strip():
            dedented.append(line[width:])
        else:
            dedented.append("")
    return "\n".join(dedented)


def textWithLineNumbers_get(text: Optional[str]) -> str:
    """
    Prefix every line with its 1-based line number

    Example:
        >>> print(textWithLineNumbers_get("a = 1\\nb = 2"))
           1. a = 1
           2. b = 2
    """
    if not text:
        return ""
    lines = text.splitlines()
    width = max(4, len(str(len(lines))))
    return "\n".join(f"{number:>{width}}. {line}" for number, line in enumerate(lines, 1))


def listing_make(code: Optional[str], line_numbers: bool = True, highlight_code: bool = True) -> str:
    """
    Generated source listing for terminals and logs

    Args:
        code: Generated Python source
        line_numbers: Prefix lines with their numbers
        highlight_code: Colorize with Pygments (ANSI escapes)
    """
    if not code:
        return ""
    text = highlight(code, PythonLexer(), TerminalFormatter()) if highlight_code else code
    if line_numbers:
        text = textWithLineNumbers_get(text.rstrip("\n"))
    return text


def path_normalize(path: str) -> str:
    """
    Normalize separators and collapse '.'/'..' components

    Backslashes are treated as separators on every platform.

    Example:
        >>> path_normalize("views\\\\partials/../nav.html")
        'views/nav.html'
    """
    return os.path.normpath(path.replace("\\", "/"))
