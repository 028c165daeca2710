"""
Page directive registry for scriptlet

Page directives are ordinary Python statements on the `Script` context
object that the transpiler and composer also recognize textually:

    {{% Script.layout = "_layout.html" %}}      COMPOSITION
    {{ Script.render_content() }}               COMPOSITION (layout page)
    {{ Script.render_section("head") }}         COMPOSITION (layout page)
    {{ Script.section("head") }}                CAPTURE (content page)
    {{ Script.end_section("head") }}            CAPTURE (content page)
    {{% Script.title = "Home" %}}               AMBIENT
    {{ Script.render_partial("./nav.html") }}   PARTIAL

Uses DirectiveSpec for metadata and matching.
"""

import re
from typing import Dict, Iterator, List, Optional, Tuple

from ..models.directives import DirectiveSpec, DirectiveCategory, STRING_ARGUMENT


class DirectiveRegistry:
    """
    Registry of page directive specifications

    Maps directive names to DirectiveSpec objects containing metadata
    and the patterns used to recognize them in segment code.
    """

    def __init__(self) -> None:
        """Initialize the directive registry and register all built-in directives"""
        self.specs: Dict[str, DirectiveSpec] = {}
        self.compositionDirectives_register()
        self.captureDirectives_register()
        self.ambientDirectives_register()
        self.partialDirectives_register()

    def register(self, spec: DirectiveSpec) -> None:
        """Register a directive specification"""
        self.specs[spec.name] = spec

    def get(self, name: str) -> Optional[DirectiveSpec]:
        """Get directive specification by name"""
        return self.specs.get(name)

    def directives_listByCategory(self, category: DirectiveCategory) -> List[DirectiveSpec]:
        """Get all directives in a category"""
        return [spec for spec in self.specs.values() if spec.category == category]

    def segment_match(self, code: str) -> Optional[Tuple[DirectiveSpec, re.Match]]:
        """
        Find a whole-segment directive (section, placeholder) in segment code

        Args:
            code: Expression or code-block text

        Returns:
            (spec, match) for the first full-match directive, or None
        """
        for spec in self.specs.values():
            if not spec.full_match:
                continue
            match = spec.match(code)
            if match:
                return spec, match
        return None

    def value_extract(self, name: str, code: str) -> Optional[str]:
        """
        Extract the literal string assigned by a search-style directive

        Example:
            >>> registry.value_extract("layout", 'Script.layout = "_layout.html"')
            '_layout.html'
        """
        spec = self.specs[name]
        match = spec.match(code)
        if not match:
            return None
        return match.group("name")

    def partials_find(self, code: str) -> Iterator[re.Match]:
        """Yield every Script.render_partial() call with a literal path in code"""
        spec = self.specs["render_partial"]
        return spec._regex.finditer(code)

    def placeholder_match(self, line: str) -> Optional[Tuple[DirectiveSpec, Optional[str]]]:
        """
        Recognize a generated placeholder statement line

        Args:
            line: One line of generated Python source

        Returns:
            (spec, argument) if the stripped line is a placeholder, else None
        """
        for spec in self.directives_listByCategory(DirectiveCategory.COMPOSITION):
            if spec.placeholder is None:
                continue
            match = spec.match(line)
            if match:
                argument = match.group("name") if "name" in match.groupdict() else None
                return spec, argument
        return None

    def compositionDirectives_register(self) -> None:
        """Register layout and placeholder directives"""

        self.register(DirectiveSpec(
            name='layout',
            category=DirectiveCategory.COMPOSITION,
            description='Assign the layout page this content page is rendered into',
            pattern=r'Script\.layout\s*=\s*' + STRING_ARGUMENT,
            full_match=False,
            examples=['{{% Script.layout = "_layout.html" %}}'],
        ))

        self.register(DirectiveSpec(
            name='render_content',
            category=DirectiveCategory.COMPOSITION,
            description='Placeholder in a layout page for the content page body',
            pattern=r'Script\.render_content\(\s*\)',
            placeholder='Script.render_content()',
            examples=['{{ Script.render_content() }}'],
        ))

        self.register(DirectiveSpec(
            name='render_section',
            category=DirectiveCategory.COMPOSITION,
            description='Placeholder in a layout page for a named content section',
            pattern=r'Script\.render_section\(\s*' + STRING_ARGUMENT + r'\s*\)',
            placeholder='Script.render_section({name!r})',
            examples=['{{ Script.render_section("head") }}'],
        ))

    def captureDirectives_register(self) -> None:
        """Register section capture directives"""

        self.register(DirectiveSpec(
            name='section',
            category=DirectiveCategory.CAPTURE,
            description='Start capturing a named section in a content page',
            pattern=r'Script\.section\(\s*' + STRING_ARGUMENT + r'\s*\)',
            examples=['{{ Script.section("head") }}'],
        ))

        self.register(DirectiveSpec(
            name='end_section',
            category=DirectiveCategory.CAPTURE,
            description='Stop capturing the current section',
            pattern=r'Script\.end_section\(\s*(?:' + STRING_ARGUMENT + r')?\s*\)',
            examples=['{{ Script.end_section("head") }}'],
        ))

    def ambientDirectives_register(self) -> None:
        """Register ambient value directives"""

        self.register(DirectiveSpec(
            name='title',
            category=DirectiveCategory.AMBIENT,
            description='Page title, readable by the layout as Script.title',
            pattern=r'Script\.title\s*=\s*' + STRING_ARGUMENT,
            full_match=False,
            examples=['{{% Script.title = "Home" %}}'],
        ))

    def partialDirectives_register(self) -> None:
        """Register partial rendering directives"""

        self.register(DirectiveSpec(
            name='render_partial',
            category=DirectiveCategory.PARTIAL,
            description='Render another template file into the output at this point',
            pattern=(
                r'Script\.render_partial(?:_async)?\(\s*' + STRING_ARGUMENT
                + r'\s*(?:,\s*(?P<model>[^()]*?(?:\([^()]*\)[^()]*?)*))?\s*\)'
            ),
            full_match=False,
            examples=[
                '{{ Script.render_partial("./nav.html") }}',
                '{{ Script.render_partial("~/card.html", Model.Card) }}',
            ],
        ))
