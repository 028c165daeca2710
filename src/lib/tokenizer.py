r"""
Delimiter tokenizer for script templates

Splits raw template text into an ordered list of Segments using the
markers of a DelimiterSet.

The tokenizer operates in a single left-to-right scan:
1. Locate the next start marker (longest-prefix match: {{: before {{)
2. Flush the literal text in front of it
3. Find the end marker for that segment kind and emit the segment

Key features:
- Longest-prefix matching for markers sharing a prefix
- Backslash escaping (\{{ and \}} for literal delimiters)
- Comment segments recognized and dropped
- Line break after a code block removed (code-only lines leave no blank line)
- Line/offset tracking with source context for error reporting

Example:
    >>> segments = Tokenizer("Hello {{ Model.Name }}!").tokenize()
    >>> [s.kind.value for s in segments]
    ['literal', 'expression', 'literal']
    >>> segments[1].text
    'Model.Name'
"""

from typing import List, Optional, Tuple

from ..models.segments import DelimiterSet, EncodingMode, Segment, SegmentKind
from .errors import ParseError


class Tokenizer:
    r"""
    Tokenizer for {{ }}, {{: }}, {{! }}, {{% %}} and {{@ @}} markers

    Handles:
    - Literal text between markers
    - Expressions with default, forced-encoded and forced-raw output
    - Multi-line code blocks
    - Comments (discarded)
    - Backslash escaping of start/end markers in literal text
    """

    def __init__(
        self,
        source: str,
        delimiters: Optional[DelimiterSet] = None,
        strip_code_newline: bool = True,
    ) -> None:
        """
        Initialize tokenizer with template text

        Args:
            source: Raw template text
            delimiters: Marker table (defaults to DelimiterSet())
            strip_code_newline: Drop one line break right after a code block

        Attributes:
            source: Template text being tokenized
            delimiters: Marker table, fixed for the lifetime of this tokenizer
            position: Current character position in source (for scanning)
            segments: Accumulated segments
        """
        self.source = source or ""
        self.delimiters = delimiters or DelimiterSet()
        self.strip_code_newline = strip_code_newline
        self.position = 0
        self.segments: List[Segment] = []
        self._start_markers = self.delimiters.startMarkers_get()

    def tokenize(self) -> List[Segment]:
        """
        Tokenize the source into segments

        Returns:
            Ordered list of LITERAL, EXPRESSION and CODE segments. Comments
            are recognized but never returned.

        Raises:
            ParseError: On an unterminated marker, an empty expression, or an
                        expression end marker in literal text ahead of the
                        next start marker

        Example:
            >>> Tokenizer("{{% for i in range(2): %}}{{ i }}{{% end %}}").tokenize()
            [Segment(kind=CODE, text=' for i in range(2): ', ...),
             Segment(kind=EXPRESSION, text='i', ...),
             Segment(kind=CODE, text=' end ', ...)]
        """
        self.position = 0
        self.segments = []

        while self.position < len(self.source):
            found = self.marker_findNext(self.position)
            if found is None:
                self.literal_add(self.source[self.position:], self.position, check_stray=False)
                break

            marker_pos, marker, kind, encoding = found

            # Escaped start marker: emit it as literal text and move on
            if marker_pos > 0 and self.source[marker_pos - 1] == '\\':
                self.literal_add(self.source[self.position:marker_pos - 1], self.position)
                self.literal_add(marker, marker_pos, check_stray=False)
                self.position = marker_pos + len(marker)
                continue

            self.literal_add(self.source[self.position:marker_pos], self.position)
            self.position = self.segment_read(marker_pos, marker, kind, encoding)

        return self.segments

    def marker_findNext(self, start: int) -> Optional[Tuple[int, str, SegmentKind, EncodingMode]]:
        """
        Find the next start marker at or after a position

        Earliest position wins; at the same position the longest marker wins
        (markers are pre-sorted longest first).

        Returns:
            (position, marker, kind, encoding) or None if no marker remains
        """
        best: Optional[Tuple[int, str, SegmentKind, EncodingMode]] = None
        for marker, kind, encoding in self._start_markers:
            if not marker:
                continue
            pos = self.source.find(marker, start)
            if pos == -1:
                continue
            if best is None or pos < best[0]:
                best = (pos, marker, kind, encoding)
        return best

    def segment_read(self, marker_pos: int, marker: str, kind: SegmentKind, encoding: EncodingMode) -> int:
        """
        Read one delimited segment starting at a start marker

        Args:
            marker_pos: Position of the start marker
            marker: The start marker text
            kind: Segment kind the marker opens
            encoding: Encoding mode the marker requests

        Returns:
            Position directly after the consumed segment

        Raises:
            ParseError: If the end marker is missing or the expression is empty
        """
        end_marker = self.delimiters.endMarker_get(kind)
        content_start = marker_pos + len(marker)
        close_pos = self.source.find(end_marker, content_start)

        if close_pos == -1:
            self.error(
                f"Unterminated '{marker}' marker: expected '{end_marker}' before end of template",
                marker=marker,
                position=marker_pos,
            )

        content = self.source[content_start:close_pos]
        next_pos = close_pos + len(end_marker)
        line_number = self.lineNumber_get(marker_pos)

        if kind == SegmentKind.COMMENT:
            return next_pos

        if kind == SegmentKind.EXPRESSION:
            content = content.strip()
            if not content:
                self.error(f"Empty expression in '{marker}' marker", marker=marker, position=marker_pos)
            self.segments.append(Segment(kind, content, encoding, marker_pos, line_number))
            return next_pos

        self.segments.append(Segment(SegmentKind.CODE, content, EncodingMode.DEFAULT, marker_pos, line_number))

        if self.strip_code_newline:
            if self.source.startswith('\r\n', next_pos):
                next_pos += 2
            elif self.source.startswith('\n', next_pos):
                next_pos += 1

        return next_pos

    def literal_add(self, text: str, offset: int, check_stray: bool = True) -> None:
        r"""
        Append literal text, merging with a preceding literal segment

        Args:
            text: Literal text
            offset: Position of text in source (for error reporting)
            check_stray: Reject an unescaped expression end marker in text

        Raises:
            ParseError: If check_stray is set and text contains an unescaped
                        expression end marker (mismatched nesting)
        """
        if not text:
            return

        end_marker = self.delimiters.expression_end
        escaped_end = '\\' + end_marker

        if check_stray:
            unescaped = text.replace(escaped_end, '')
            stray = unescaped.find(end_marker)
            if stray != -1:
                self.error(
                    f"Mismatched '{end_marker}' marker: no matching start marker",
                    marker=end_marker,
                    position=offset + text.find(end_marker),
                )

        text = text.replace(escaped_end, end_marker)

        if self.segments and self.segments[-1].kind == SegmentKind.LITERAL:
            self.segments[-1].text += text
            return

        self.segments.append(
            Segment(SegmentKind.LITERAL, text, EncodingMode.DEFAULT, offset, self.lineNumber_get(offset))
        )

    def lineNumber_get(self, position: int) -> int:
        """1-based line number of a source position"""
        return self.source.count('\n', 0, position) + 1

    def error(self, message: str, marker: Optional[str] = None, position: Optional[int] = None) -> None:
        """
        Report tokenizer error with source context

        Raises ParseError with detailed error message including:
        - Custom error message
        - Line number and character position
        - Source context (±40 characters around error)
        - Caret indicator pointing to error position

        Raises:
            ParseError: Always (this is an error reporting function)

        Example output:
            Unterminated '{{%' marker: expected '%}}' before end of template
            Line 3, position 42
            Context: ...<ul>{{% for item in Model.Items: ...
                            ^
        """
        if position is None:
            position = self.position
        line_number = self.lineNumber_get(position)

        context_start = max(0, position - 40)
        context_end = min(len(self.source), position + 40)
        context = self.source[context_start:context_end].replace('\n', ' ')

        raise ParseError(
            f"{message}\n"
            f"Line {line_number}, position {position}\n"
            f"Context: ...{context}...\n"
            f"         {' ' * (position - context_start + 3)}^",
            marker=marker,
            position=position,
            line_number=line_number,
        )


def tokenize(text: str, delimiters: Optional[DelimiterSet] = None) -> List[Segment]:
    """Tokenize template text with the given (or default) delimiters"""
    return Tokenizer(text, delimiters).tokenize()
