"""
Tokenizer-specific data models

Delimiter configuration and the classified segments produced by the
Tokenizer.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..config.settings import AppSettings


class SegmentKind(Enum):
    """Classification of one tokenized chunk of template text"""
    LITERAL = "literal"
    EXPRESSION = "expression"
    CODE = "code"
    COMMENT = "comment"


class EncodingMode(Enum):
    """
    Output encoding requested by an expression marker

    DEFAULT follows DelimiterSet.html_encode_expressions_by_default,
    ENCODED is the {{: }} form and RAW is the {{! }} form.
    """
    DEFAULT = "default"
    ENCODED = "encoded"
    RAW = "raw"


@dataclass(frozen=True)
class DelimiterSet:
    """
    Marker table used to split template text into segments

    Frozen so a set can never change while a parse is using it. Derive a
    modified copy with `override()`.

    Attributes:
        expression_start: Opens a plain expression ({{)
        expression_end: Closes every expression form (}})
        encoded_expression_start: Opens a forced-encoded expression ({{:)
        raw_expression_start: Opens a forced-raw expression ({{!)
        code_start: Opens a verbatim code block ({{%)
        code_end: Closes a verbatim code block (%}})
        comment_start: Opens a discarded comment ({{@)
        comment_end: Closes a discarded comment (@}})
        html_encode_expressions_by_default: Encode plain {{ }} output

    Example:
        >>> DelimiterSet().override(html_encode_expressions_by_default=True)
        DelimiterSet(expression_start='{{', ..., html_encode_expressions_by_default=True)
    """
    expression_start: str = "{{"
    expression_end: str = "}}"
    encoded_expression_start: str = "{{:"
    raw_expression_start: str = "{{!"
    code_start: str = "{{%"
    code_end: str = "%}}"
    comment_start: str = "{{@"
    comment_end: str = "@}}"
    html_encode_expressions_by_default: bool = False

    @classmethod
    def from_settings(cls, settings: "AppSettings") -> "DelimiterSet":
        """Build the delimiter set described by application settings"""
        return cls(
            expression_start=settings.expression_start,
            expression_end=settings.expression_end,
            encoded_expression_start=settings.encoded_expression_start,
            raw_expression_start=settings.raw_expression_start,
            code_start=settings.code_start,
            code_end=settings.code_end,
            comment_start=settings.comment_start,
            comment_end=settings.comment_end,
            html_encode_expressions_by_default=settings.html_encode_by_default,
        )

    def override(self, **changes) -> "DelimiterSet":
        """Return a copy with the given markers replaced"""
        return replace(self, **changes)

    def startMarkers_get(self) -> List[Tuple[str, SegmentKind, EncodingMode]]:
        """
        List start markers with the segment kind they open

        Sorted longest first so markers sharing a prefix ({{: vs {{) are
        resolved by the longest-prefix rule.

        Returns:
            List of (marker, kind, encoding) tuples
        """
        markers = [
            (self.comment_start, SegmentKind.COMMENT, EncodingMode.DEFAULT),
            (self.code_start, SegmentKind.CODE, EncodingMode.DEFAULT),
            (self.encoded_expression_start, SegmentKind.EXPRESSION, EncodingMode.ENCODED),
            (self.raw_expression_start, SegmentKind.EXPRESSION, EncodingMode.RAW),
            (self.expression_start, SegmentKind.EXPRESSION, EncodingMode.DEFAULT),
        ]
        return sorted(markers, key=lambda m: len(m[0]), reverse=True)

    def endMarker_get(self, kind: SegmentKind) -> str:
        """End marker that closes a segment of the given kind"""
        if kind == SegmentKind.CODE:
            return self.code_end
        if kind == SegmentKind.COMMENT:
            return self.comment_end
        return self.expression_end


@dataclass
class Segment:
    """
    One classified chunk of a tokenized template

    Attributes:
        kind: Literal, expression, code block or comment
        text: Literal text, expression/code source, or comment body
        encoding: Encoding requested by the expression marker
        position: Character offset of the segment in the template
        line_number: 1-based line where the segment starts

    Example:
        For "Hi {{: Model.Name }}":
        [Segment(kind=LITERAL, text="Hi ", ...),
         Segment(kind=EXPRESSION, text="Model.Name", encoding=ENCODED, ...)]
    """
    kind: SegmentKind
    text: str
    encoding: EncodingMode = EncodingMode.DEFAULT
    position: int = 0
    line_number: int = 1


@dataclass
class ScriptExpression:
    """
    One {{ }} tag found by the ScriptEvaluator

    Attributes:
        tag: Tag text exactly as written, markers included
        code: Expression inside the markers
        instance: Allowed instance the expression starts with (None: the
                  default instance)
        encoding: Encoding requested by the marker
        process: False when the tag is left in the output unchanged
    """
    tag: str
    code: str
    instance: Optional[str] = None
    encoding: EncodingMode = EncodingMode.DEFAULT
    process: bool = True
