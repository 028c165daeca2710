"""
Page directive specification and metadata models

Defines the structure and categories of the page directives (Layout,
Section, RenderSection, ...) recognized inside expression and code
segments during transpilation and composition.
"""

import re
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional


class DirectiveCategory(Enum):
    """
    Categories of page directives

    Used for organization, documentation generation, and validation.
    """
    COMPOSITION = "composition"  # Script.layout, Script.render_content(), Script.render_section()
    CAPTURE = "capture"          # Script.section(), Script.end_section()
    AMBIENT = "ambient"          # Script.title
    PARTIAL = "partial"          # Script.render_partial()


@dataclass
class DirectiveSpec:
    """
    Specification for a page directive

    Attributes:
        name: Directive name (e.g., "section", "render_content")
        category: Category for organization
        description: Human-readable description
        pattern: Regex matched against segment code; group "name" holds the
                 argument (section name, layout path, ...) when there is one
        full_match: Pattern must cover the whole stripped segment code
                    (placeholders) rather than appear anywhere in it
        placeholder: Normalized statement the transpiler emits in place of
                     the segment, located again by the composer
        examples: Example usage strings
    """
    name: str
    category: DirectiveCategory
    description: str
    pattern: str
    full_match: bool = True
    placeholder: Optional[str] = None
    examples: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._regex = re.compile(self.pattern, re.DOTALL)

    def match(self, code: str) -> Optional[re.Match]:
        """
        Match this directive against a segment's code

        Args:
            code: Stripped expression or code-block text

        Returns:
            Match object or None
        """
        if self.full_match:
            return self._regex.fullmatch(code.strip())
        return self._regex.search(code)

    def placeholder_make(self, argument: Optional[str] = None) -> str:
        """
        Build the placeholder statement for this directive

        Example:
            >>> spec.placeholder_make("head")
            "Script.render_section('head')"
        """
        if self.placeholder is None:
            raise ValueError(f"Directive '{self.name}' has no placeholder form")
        if argument is None:
            return self.placeholder
        return self.placeholder.format(name=argument)


# String literal argument: "name" or 'name'
STRING_ARGUMENT = r"""(?P<quote>['"])(?P<name>.*?)(?P=quote)"""
