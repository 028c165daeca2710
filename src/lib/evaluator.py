"""
Expression expander that never compiles

ScriptEvaluator fills {{ }} tags in a document from a fixed set of
objects the caller allows, without generating or running any Python
code. Only member lookups and method calls on allowed instances are
evaluated:

    {{ Topic.Title }}                  attribute (or mapping key) path
    {{ Helpers.Link("Home", "/") }}    method call with literal arguments
    {{ Helpers.Upper(Topic.Title) }}   arguments can be expressions too
    {{ Title }}                        member of the default instance

Tags naming anything else are left in the output as written, code blocks
are copied through unexecuted and comments are dropped. A failing
expression renders as `{{ ERROR: <code> - <message> }}`. Results are
HTML encoded unless the tag is {{! }} or the value is raw (`__html__`).

Example:
    >>> evaluator = ScriptEvaluator({"Topic": {"Title": "Hi & bye"}})
    >>> evaluator.evaluate("<h1>{{ Topic.Title }}</h1>{{ Other.X }}")
    '<h1>Hi &amp; bye</h1>{{ Other.X }}'
"""

import ast
import html
import re
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from ..models.segments import DelimiterSet, EncodingMode, ScriptExpression, Segment, SegmentKind
from .encoding import html_encode, text_make
from .log import LOG, state_connectToLogger
from .tokenizer import Tokenizer


# Expression starting with an instance name: "Topic.Title", "Helpers.Link(...)"
INSTANCE_PATTERN = re.compile(r'^([A-Za-z_]\w*)\s*\.')

# Bare member of the default instance: "Title", "Link('a', 'b')"
MEMBER_PATTERN = re.compile(r'^[A-Za-z_][\w.]*\s*(\(.*\))?$', re.DOTALL)

_NO_LITERAL = object()


def parameters_split(text: str) -> List[str]:
    """
    Split call arguments on commas outside quotes and brackets

    Example:
        >>> parameters_split('"a, b", Helpers.Sum(1, 2), 3')
        ['"a, b"', 'Helpers.Sum(1, 2)', '3']
    """
    parameters: List[str] = []
    current: List[str] = []
    depth = 0
    quote = None

    for index, char in enumerate(text):
        if quote:
            if char == quote and text[index - 1] != "\\":
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char in ("(", "[", "{"):
            depth += 1
        elif char in (")", "]", "}"):
            depth -= 1
        elif char == "," and depth == 0:
            parameters.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    last = "".join(current).strip()
    if last:
        parameters.append(last)
    return parameters


def literal_get(code: str) -> Any:
    """Value of a Python literal (or true/false), else _NO_LITERAL"""
    if code in ("true", "false"):
        return code == "true"
    try:
        return ast.literal_eval(code)
    except (ValueError, SyntaxError):
        return _NO_LITERAL


def member_get(value: Any, path: str) -> Any:
    """Follow a dotted path of attributes, using keys on mappings"""
    for name in path.split("."):
        name = name.strip()
        value = value[name] if isinstance(value, Mapping) else getattr(value, name)
    return value


class ScriptEvaluator:
    """
    Expand {{ }} tags against allowed instances

    Attributes:
        allowed_instances: Objects expressions may reach, by name
        default_instance: Object that expressions without an instance
                          prefix resolve against (None: such tags are
                          left unchanged)
        delimiters: Marker table
        verbosity: LOG() verbosity
    """

    def __init__(
        self,
        allowed_instances: Optional[Dict[str, Any]] = None,
        default_instance: Any = None,
        delimiters: Optional[DelimiterSet] = None,
        verbosity: int = 1,
    ) -> None:
        self.allowed_instances: Dict[str, Any] = dict(allowed_instances or {})
        self.default_instance = default_instance
        self.delimiters = delimiters or DelimiterSet()
        self.verbosity = verbosity

    def evaluate(self, content: str, html_decode: bool = False) -> str:
        """
        Expand every processable tag of a document

        Args:
            content: Document text with {{ }} tags
            html_decode: Decode HTML entities in expressions first (for
                         tags taken from HTML-encoded text)

        Raises:
            ParseError: If the markers themselves are malformed
        """
        state_connectToLogger(self)
        output: List[str] = []

        for segment in self.segments_get(content):
            if segment.kind == SegmentKind.LITERAL:
                output.append(segment.text)
            elif segment.kind == SegmentKind.EXPRESSION:
                output.append(self.expression_expand(self.expression_make(segment, content, html_decode)))
            else:
                output.append(self.tag_get(segment, content))

        return "".join(output)

    def expressions_parse(self, content: str, html_decode: bool = False) -> List[ScriptExpression]:
        """List the expression tags of a document without evaluating them"""
        return [
            self.expression_make(segment, content, html_decode)
            for segment in self.segments_get(content)
            if segment.kind == SegmentKind.EXPRESSION
        ]

    def segments_get(self, content: str) -> List[Segment]:
        return Tokenizer(content, self.delimiters, strip_code_newline=False).tokenize()

    def tag_get(self, segment: Segment, content: str) -> str:
        """Original text of an expression or code segment, markers included"""
        start = next(
            marker for marker, kind, encoding in self.delimiters.startMarkers_get()
            if kind == segment.kind and encoding == segment.encoding
        )
        end = self.delimiters.endMarker_get(segment.kind)
        close = content.index(end, segment.position + len(start))
        return content[segment.position:close + len(end)]

    def expression_make(self, segment: Segment, content: str, html_decode: bool = False) -> ScriptExpression:
        code = html.unescape(segment.text) if html_decode else segment.text
        expression = ScriptExpression(tag=self.tag_get(segment, content), code=code, encoding=segment.encoding)

        match = INSTANCE_PATTERN.match(code)
        if match:
            expression.instance = match.group(1)
            expression.process = expression.instance in self.allowed_instances
        else:
            expression.process = self.default_instance is not None
        return expression

    def expression_expand(self, expression: ScriptExpression) -> str:
        """Rendered text of one tag"""
        if not expression.process:
            return expression.tag

        try:
            value = self.expression_evaluate(expression.code)
        except Exception as e:
            LOG(f"Evaluating '{expression.code}' failed: {e}", level=2)
            message = html_encode(f"{expression.code} - {e}")
            return f"{self.delimiters.expression_start} ERROR: {message} {self.delimiters.expression_end}"

        if expression.encoding == EncodingMode.RAW:
            return text_make(value)
        return html_encode(value)

    def expression_evaluate(self, code: str) -> Any:
        """
        Value of an expression: an instance member or call, a literal, or
        a member of the default instance

        Unknown expressions evaluate to None.

        Raises:
            ValueError: If a member path or an argument cannot be resolved
            Exception: Whatever a called method raises
        """
        code = code.strip()

        match = INSTANCE_PATTERN.match(code)
        if match and match.group(1) in self.allowed_instances:
            return self.member_evaluate(self.allowed_instances[match.group(1)], code[match.end():], code)

        literal = literal_get(code)
        if literal is not _NO_LITERAL:
            return literal

        if self.default_instance is not None and MEMBER_PATTERN.match(code):
            return self.member_evaluate(self.default_instance, code, code)
        return None

    def member_evaluate(self, instance: Any, member: str, code: str) -> Any:
        """Resolve `path` or call `path(arguments)` on an instance"""
        member = member.strip()
        if "(" not in member:
            try:
                return member_get(instance, member)
            except (AttributeError, KeyError, TypeError) as e:
                raise ValueError(f"[ {code} ] expression evaluation failed.") from e

        open_index = member.index("(")
        close_index = member.rfind(")")
        arguments = member[open_index + 1:close_index] if close_index > open_index else ""

        values = []
        for parameter in parameters_split(arguments):
            try:
                values.append(self.expression_evaluate(parameter))
            except Exception as e:
                raise ValueError(f"{parameter} expression evaluation failed.") from e

        try:
            method = member_get(instance, member[:open_index])
        except (AttributeError, KeyError, TypeError) as e:
            raise ValueError(f"[ {code} ] expression evaluation failed.") from e
        return method(*values)
