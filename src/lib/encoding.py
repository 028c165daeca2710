"""
HTML output encoding for expression values

Expression results are written either raw or HTML encoded. Values that
carry an `__html__` method (RawString, or markup objects from other
libraries) already hold safe markup and are written through unchanged
in both modes.
"""

import html
from typing import Any


class RawString(str):
    """
    String that is never HTML encoded on output

    Returned by Script.raw() and by partial renders so that already
    rendered markup survives an encoding expression unchanged.

    Example:
        >>> html_encode(RawString("<b>hi</b>"))
        '<b>hi</b>'
    """

    def __html__(self) -> str:
        return str(self)

    def __repr__(self) -> str:
        return f"RawString({str.__repr__(self)})"


def html_encode(value: Any) -> str:
    """
    HTML encode an expression value

    Args:
        value: Any expression result

    Returns:
        "" for None, value.__html__() for markup-aware values, otherwise
        the escaped str() of the value (quotes included)

    Example:
        >>> html_encode("Rick & Dale")
        'Rick &amp; Dale'
    """
    if value is None:
        return ""
    if hasattr(value, "__html__"):
        return value.__html__()
    return html.escape(str(value), quote=True)


def text_make(value: Any) -> str:
    """Convert an expression value to output text without encoding"""
    if value is None:
        return ""
    if hasattr(value, "__html__"):
        return value.__html__()
    return str(value)
