"""
Template transpiler: segments to Python statements

Walks the segments produced by the Tokenizer and emits the body of one
Python function:

    Hello {{ Model.Name }}!              writer.write('Hello ')
    {{% for i in range(1, 3): %}}        writer.write(Model.Name)
    {{ i }}. Hi                          writer.write('! ')
    {{% end %}}                          for i in range(1, 3):
                                             writer.write(i)
                                             writer.write('. Hi ')

Literal text becomes writer.write() of its repr, expressions become
writer.write() or writer.write_encoded() depending on their encoding
mode, and code blocks are emitted verbatim.

Code blocks and indentation:
    Python blocks are delimited by indentation, so a code block whose last
    top-level line ends with ':' opens a block that following literals,
    expressions and code are indented into. A code block holding `end`
    closes it, and `else:`, `elif ...:`, `except ...:` and `finally:`
    close and reopen it. The inline forms (`else: pass`, `elif x: y()`)
    reopen it too, with the clause body as its first statement.

    Multi-line code blocks are dedented. When the first line sits on the
    marker line and ends with ':', the lines below it form its body.

Page directives (sections, layout placeholders, layout/title assignment,
partial calls) are recognized through the DirectiveRegistry.
"""

import io
import re
import tokenize
from typing import Dict, List, Optional, Tuple

from ..models.directives import DirectiveCategory
from ..models.segments import DelimiterSet, EncodingMode, Segment, SegmentKind
from ..models.units import ParsedUnit, PartialRef
from .directives import DirectiveRegistry
from .errors import ParseError
from .log import LOG
from .utils import source_dedent, stringLines_find


# Top-level statements that continue the compound statement of an open block
CONTINUATION_PATTERN = re.compile(r'^(else|elif|except|finally)\b')

# A top-level `end` closes the innermost open block
END_PATTERN = re.compile(r'^end\s*(#.*)?$')

# Trailing comment on a block header line ("for x in y:  # rows")
TRAILING_COMMENT = re.compile(r'\s+#[^\'"]*$')


def clause_split(statement: str) -> Optional[Tuple[str, str]]:
    """
    Split an inline clause at its header colon

    Example:
        >>> clause_split("elif x > {'a': 1}['a']: y()")
        ("elif x > {'a': 1}['a']:", 'y()')
        >>> clause_split("else:  # fallback") is None
        True

    Returns:
        (header, body), or None when no statement follows the colon
    """
    offsets = [0]
    for line in statement.splitlines(True):
        offsets.append(offsets[-1] + len(line))

    depth = 0
    try:
        for token in tokenize.generate_tokens(io.StringIO(statement).readline):
            if token.type != tokenize.OP:
                continue
            if token.string in {"(", "[", "{"}:
                depth += 1
            elif token.string in {")", "]", "}"}:
                depth -= 1
            elif token.string == ":" and depth == 0:
                position = offsets[token.start[0] - 1] + token.start[1] + 1
                body = statement[position:].strip()
                if not body or body.startswith("#"):
                    return None
                return statement[:position], body
    except (tokenize.TokenError, SyntaxError):
        pass
    return None


class CodeBuilder:
    """Accumulate generated source lines at a tracked indent level"""

    INDENT_STEP = 4

    def __init__(self, indent_level: int = 0) -> None:
        self.lines: List[str] = []
        self.indent_level = indent_level

    def __str__(self) -> str:
        return "".join(line + "\n" for line in self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def line_add(self, line: str) -> None:
        """Add a line of source at the current indent level"""
        self.lines.append(" " * self.indent_level + line)

    def indent(self) -> None:
        self.indent_level += self.INDENT_STEP

    def dedent(self) -> None:
        self.indent_level -= self.INDENT_STEP


class OpenBlock:
    """A block opened by a code segment and still waiting for `end`"""

    def __init__(self, builder: CodeBuilder, line_number: int) -> None:
        self.builder = builder
        self.line_count = len(builder)
        self.line_number = line_number


class Transpiler:
    """
    Convert template segments to a ParsedUnit

    Attributes:
        delimiters: Marker table (supplies the default encoding policy)
        registry: Page directive registry
        source_path: Template file the segments came from (if any)
        builder: Code builder currently receiving statements (the page body
                 or a section being captured)
    """

    def __init__(
        self,
        delimiters: Optional[DelimiterSet] = None,
        registry: Optional[DirectiveRegistry] = None,
        source_path: Optional[str] = None,
    ) -> None:
        self.delimiters = delimiters or DelimiterSet()
        self.registry = registry or DirectiveRegistry()
        self.source_path = source_path

        self.body = CodeBuilder()
        self.builder = self.body
        self.blocks: List[OpenBlock] = []
        self.sections: Dict[str, str] = {}
        self.section_name: Optional[str] = None
        self.section_line = 0
        self.section_depth = 0
        self.layout: Optional[str] = None
        self.title: Optional[str] = None
        self.partials: List[PartialRef] = []

    def transpile(self, segments: List[Segment]) -> ParsedUnit:
        """
        Transpile segments into a ParsedUnit

        Args:
            segments: Output of Tokenizer.tokenize()

        Returns:
            ParsedUnit with the function body (indent level 0), captured
            sections, layout reference, title and partial references

        Raises:
            ParseError: On `end` without an open block, a block left open at
                        the end of the template, or unbalanced sections
        """
        for segment in segments:
            if segment.kind == SegmentKind.LITERAL:
                self.builder.line_add(f"writer.write({segment.text!r})")
            elif segment.kind == SegmentKind.EXPRESSION:
                self.expression_emit(segment)
            elif segment.kind == SegmentKind.CODE:
                self.code_emit(segment)

        if self.section_name is not None:
            raise ParseError(
                f"Section '{self.section_name}' opened on line {self.section_line} is never closed",
                line_number=self.section_line,
            )
        if self.blocks:
            block = self.blocks[-1]
            raise ParseError(
                f"Block opened on line {block.line_number} is never closed: missing '{{% end %}}'",
                line_number=block.line_number,
            )

        LOG(f"Transpiled {len(segments)} segments, {len(self.sections)} sections", level=3)

        return ParsedUnit(
            body=str(self.body),
            sections=self.sections,
            layout=self.layout,
            partials=self.partials,
            title=self.title,
            source_path=self.source_path,
        )

    def encoding_resolve(self, encoding: EncodingMode) -> bool:
        """True if an expression with this encoding mode is HTML encoded"""
        if encoding == EncodingMode.ENCODED:
            return True
        if encoding == EncodingMode.RAW:
            return False
        return self.delimiters.html_encode_expressions_by_default

    def expression_emit(self, segment: Segment) -> None:
        """Emit an expression segment, or act on the directive it holds"""
        if self.directive_handle(segment):
            return

        self.references_collect(segment.text)
        code = segment.text
        if "\n" in code:
            code = f"({code})"
        if self.encoding_resolve(segment.encoding):
            self.builder.line_add(f"writer.write_encoded({code})")
        else:
            self.builder.line_add(f"writer.write({code})")

    def directive_handle(self, segment: Segment) -> bool:
        """
        Handle section and placeholder directives

        Returns:
            True if the segment was consumed as a directive
        """
        found = self.registry.segment_match(segment.text)
        if found is None:
            return False

        spec, match = found
        argument = match.groupdict().get("name")

        if spec.name == "section":
            self.section_start(argument, segment.line_number)
        elif spec.name == "end_section":
            self.section_end(argument, segment.line_number)
        elif spec.category == DirectiveCategory.COMPOSITION and spec.placeholder is not None:
            self.builder.line_add(spec.placeholder_make(argument))
        else:
            return False
        return True

    def section_start(self, name: str, line_number: int) -> None:
        if self.section_name is not None:
            raise ParseError(
                f"Section '{name}' on line {line_number} is nested inside section '{self.section_name}'",
                line_number=line_number,
            )
        self.section_name = name
        self.section_line = line_number
        self.section_depth = len(self.blocks)
        self.builder = CodeBuilder()

    def section_end(self, name: Optional[str], line_number: int) -> None:
        if self.section_name is None:
            raise ParseError(
                f"end_section({name!r}) on line {line_number} has no matching section",
                line_number=line_number,
            )
        if name is not None and name != self.section_name:
            raise ParseError(
                f"end_section({name!r}) on line {line_number} does not match section '{self.section_name}'",
                line_number=line_number,
            )
        if len(self.blocks) != self.section_depth:
            raise ParseError(
                f"Section '{self.section_name}' closes on line {line_number} with a block still open",
                line_number=line_number,
            )
        self.sections.setdefault(self.section_name, str(self.builder))
        self.section_name = None
        self.builder = self.body

    def code_emit(self, segment: Segment) -> None:
        """
        Emit a code segment verbatim, tracking blocks across segments

        Raises:
            ParseError: On `end` or a continuation line with no open block
        """
        if self.directive_handle(segment):
            return

        self.references_collect(segment.text)
        statements = self.statements_group(self.code_dedent(segment.text))

        top_level = [
            i for i, statement in enumerate(statements)
            if statement.strip() and not statement[0].isspace() and not statement.startswith("#")
        ]
        for index, statement in enumerate(statements):
            if not statement.strip():
                continue
            if statement[0].isspace():
                self.builder.line_add(statement)
                continue

            stripped = statement.strip()
            if stripped.startswith("#"):
                continue
            if END_PATTERN.match(stripped):
                self.block_close(segment.line_number, "end")
                continue

            # Only the first statement of a segment can continue a block
            # opened by an earlier segment
            if index == top_level[0] and CONTINUATION_PATTERN.match(stripped):
                self.block_close(segment.line_number, stripped.splitlines()[0])
                clause = clause_split(stripped) if len(top_level) == 1 else None
                if clause is not None:
                    # `else: pass` reopens the block like `else:` would
                    header, body = clause
                    self.builder.line_add(header)
                    self.block_open(segment.line_number)
                    self.builder.line_add(body)
                    continue

            self.builder.line_add(stripped)

        if top_level:
            last = top_level[-1]
            header = TRAILING_COMMENT.sub("", statements[last].rstrip())
            has_body = any(statement.strip() for statement in statements[last + 1:])
            if header.endswith(":") and not has_body:
                self.block_open(segment.line_number)

    @staticmethod
    def statements_group(lines: List[str]) -> List[str]:
        """Join string continuation lines onto the line their string starts on"""
        inside = stringLines_find("\n".join(lines))
        statements: List[str] = []
        for index, line in enumerate(lines):
            if index in inside and statements:
                statements[-1] += "\n" + line
            else:
                statements.append(line)
        return statements

    def code_dedent(self, code: str) -> List[str]:
        """
        Normalize the indentation of a code block

        A block starting on the marker line has that first line stripped;
        the remaining lines are dedented together and, when the first line
        opens a block, indented one step beneath it. Lines inside string
        literals are never re-indented.
        """
        lines = code.splitlines()
        if not lines:
            return []

        inside = stringLines_find(code)
        first = lines[0].lstrip() if 1 in inside else lines[0].strip()
        rest_inside = {index - 1 for index in inside if index > 0}
        rest = source_dedent("\n".join(lines[1:]), rest_inside).splitlines() if len(lines) > 1 else []

        if not first:
            return rest
        header = TRAILING_COMMENT.sub("", first)
        if 1 not in inside and header.endswith(":") and any(line.strip() for line in rest):
            pad = " " * CodeBuilder.INDENT_STEP
            rest = [
                pad + line if line.strip() and index not in rest_inside else line
                for index, line in enumerate(rest)
            ]
        return [first] + rest

    def block_open(self, line_number: int) -> None:
        self.builder.indent()
        self.blocks.append(OpenBlock(self.builder, line_number))

    def block_close(self, line_number: int, statement: str) -> None:
        """Close the innermost open block, adding `pass` if it stayed empty"""
        if len(self.blocks) <= (self.section_depth if self.section_name is not None else 0):
            raise ParseError(
                f"'{statement}' on line {line_number} has no open block to close",
                line_number=line_number,
            )
        block = self.blocks.pop()
        if len(block.builder) == block.line_count:
            block.builder.line_add("pass")
        block.builder.dedent()

    def references_collect(self, code: str) -> None:
        """Record layout, title and partial references found in code"""
        if self.layout is None:
            self.layout = self.registry.value_extract("layout", code)
        if self.title is None:
            self.title = self.registry.value_extract("title", code)
        for match in self.registry.partials_find(code):
            model = match.group("model")
            self.partials.append(
                PartialRef(path=match.group("name"), model_expression=model.strip() if model else None)
            )


def transpile(
    segments: List[Segment],
    delimiters: Optional[DelimiterSet] = None,
    source_path: Optional[str] = None,
) -> ParsedUnit:
    """Transpile segments with a fresh Transpiler"""
    return Transpiler(delimiters, source_path=source_path).transpile(segments)
