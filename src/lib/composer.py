"""
Layout and section composition

Content pages and layout pages are merged at the level of generated
Python source, before anything is compiled, so a page and all of its
layouts run as one function:

    layout body                          composed body
    -----------                          -------------
    writer.write('<title>')              writer.write('<title>')
    Script.render_section('head')   ->   Script.section('head')
    writer.write('</title><body>')       Script.title = 'X'
    Script.render_content()              writer.write(Script.title)
    writer.write('</body>')              Script.end_section('head')
                                         writer.write('</title><body>')
                                         <content page body>
                                         writer.write('</body>')

Splicing keeps the indentation of the placeholder line, so placeholders
inside layout blocks (if/for) receive correctly indented code.
"""

from typing import Callable, Dict, List, Optional

from ..models.units import ParsedUnit
from .directives import DirectiveRegistry
from .errors import ResolutionError
from .log import LOG
from .utils import source_indent, stringLines_find


# Loads the layout a unit refers to: (layout path, referring unit) -> ParsedUnit
LayoutLoader = Callable[[str, ParsedUnit], ParsedUnit]


def indentation_get(line: str) -> str:
    """Leading whitespace of a source line"""
    return line[:len(line) - len(line.lstrip())]


def block_indent(code: str, indent: str) -> List[str]:
    """Indent every non-empty code line of a block; string contents stay put"""
    return source_indent(code, indent).splitlines()


class Composer:
    """
    Splice content pages and sections into layout pages

    Attributes:
        registry: Page directive registry (placeholder recognition)
        max_layout_depth: Maximum number of chained layouts
    """

    def __init__(self, registry: Optional[DirectiveRegistry] = None, max_layout_depth: int = 16) -> None:
        self.registry = registry or DirectiveRegistry()
        self.max_layout_depth = max_layout_depth

    def compose(self, content: ParsedUnit, layout: ParsedUnit) -> ParsedUnit:
        """
        Merge a content unit into its layout unit

        The content body replaces the layout's first render_content
        placeholder. Sections are merged with content sections taking
        precedence. The result keeps the layout's own layout reference so
        chained layouts can be composed in turn.

        Args:
            content: Transpiled content page
            layout: Transpiled layout page

        Returns:
            New ParsedUnit for the merged page
        """
        lines: List[str] = []
        spliced = False

        inside = stringLines_find(layout.body)
        for index, line in enumerate(layout.body.splitlines()):
            found = None if spliced or index in inside else self.registry.placeholder_match(line)
            if found is not None and found[0].name == "render_content":
                spliced = True
                if content.body.strip():
                    lines.extend(block_indent(content.body, indentation_get(line)))
                    continue
            lines.append(line)

        if not spliced:
            LOG(f"Layout {layout.source_path} has no render_content(); content body dropped", level=2)

        sections: Dict[str, str] = dict(layout.sections)
        sections.update(content.sections)

        return ParsedUnit(
            body="".join(line + "\n" for line in lines),
            sections=sections,
            layout=layout.layout,
            partials=content.partials + layout.partials,
            title=content.title if content.title is not None else layout.title,
            source_path=layout.source_path,
        )

    def sections_splice(self, unit: ParsedUnit) -> str:
        """
        Replace render_section placeholders with captured section code

        Each spliced section is wrapped in Script.section()/end_section()
        so its rendered text is also recorded in Script.sections. A
        placeholder naming a section that was never declared is kept and
        renders nothing; declared sections that are never placed are
        dropped.

        Returns:
            Body source with sections in place
        """
        lines: List[str] = []

        inside = stringLines_find(unit.body)
        for index, line in enumerate(unit.body.splitlines()):
            found = None if index in inside else self.registry.placeholder_match(line)
            if found is None or found[0].name != "render_section" or found[1] not in unit.sections:
                lines.append(line)
                continue

            name = found[1]
            indent = indentation_get(line)
            lines.append(f"{indent}Script.section({name!r})")
            lines.extend(block_indent(unit.sections[name], indent))
            lines.append(f"{indent}Script.end_section({name!r})")
            LOG(f"Spliced section '{name}'", level=3)

        return "".join(line + "\n" for line in lines)

    def layout_resolve(self, unit: ParsedUnit, loader: LayoutLoader) -> ParsedUnit:
        """
        Compose a unit with its chain of layouts

        Args:
            unit: Transpiled page, possibly declaring a layout
            loader: Callable returning the transpiled layout a unit refers
                    to; raises ResolutionError when it cannot be found

        Returns:
            Root unit with no further layout reference

        Raises:
            ResolutionError: On a layout cycle or a chain longer than
                             max_layout_depth
        """
        seen = [unit.source_path] if unit.source_path else []
        depth = 0

        while unit.layout:
            depth += 1
            if depth > self.max_layout_depth:
                raise ResolutionError(
                    f"Layout chain exceeds {self.max_layout_depth} levels at '{unit.layout}'",
                    path=unit.layout,
                )

            layout = loader(unit.layout, unit)
            if layout.source_path and layout.source_path in seen:
                chain = " -> ".join(seen + [layout.source_path])
                raise ResolutionError(f"Layout cycle detected: {chain}", path=layout.source_path)
            if layout.source_path:
                seen.append(layout.source_path)

            LOG(f"Composing into layout {layout.source_path}", level=2)
            unit = self.compose(unit, layout)

        return unit
