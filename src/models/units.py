"""
Transpiler and compilation data models

Structures handed between the Transpiler, the Composer, the compiler
service and the artifact cache.
"""

from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Dict, List, Optional


@dataclass
class PartialRef:
    """
    A Script.render_partial() call found while transpiling

    Attributes:
        path: Path exactly as written in the template
        resolved_path: Path after base/document resolution (None if unresolved)
        model_expression: Source text of the model argument, if any
    """
    path: str
    resolved_path: Optional[str] = None
    model_expression: Optional[str] = None


@dataclass
class ParsedUnit:
    """
    Transpiled representation of one template before composition

    Attributes:
        body: Generated Python statements at indent level 0
        sections: Captured section name -> generated statements
        layout: Layout path assigned by the page (raw, unresolved)
        partials: Partial references in document order
        title: Literal title assigned by the page, if any
        source_path: File the template was read from (None for strings)

    Example:
        For "{{% Script.layout = '_layout.html' %}}Hello":
        ParsedUnit(
            body="Script.layout = '_layout.html'\\nwriter.write('Hello')\\n",
            sections={}, layout="_layout.html", partials=[], ...
        )
    """
    body: str
    sections: Dict[str, str] = field(default_factory=dict)
    layout: Optional[str] = None
    partials: List[PartialRef] = field(default_factory=list)
    title: Optional[str] = None
    source_path: Optional[str] = None


@dataclass
class Diagnostic:
    """
    One message reported by the compiler service

    Attributes:
        severity: "error" or "warning"
        message: Compiler message text
        line: 1-based line in the generated module (0 if unknown)
        column: 1-based column (0 if unknown)
    """
    severity: str
    message: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"Line {self.line}, column {self.column}: {self.severity}: {self.message}"


@dataclass
class CompileOptions:
    """
    Options passed to the compiler service alongside the module source

    Attributes:
        module_name: Name given to the generated module
        type_name: Class the module is expected to define (None: first class)
        references: Objects injected into module globals, keyed by name
        search_paths: Directories/archives that must be importable
        output_path: Directory the module is written to (as <module_name>.py)
                     instead of compiling in memory
        optimize: Optimization level for compile()
    """
    module_name: str
    type_name: Optional[str] = None
    references: Dict[str, Any] = field(default_factory=dict)
    search_paths: List[str] = field(default_factory=list)
    output_path: Optional[str] = None
    optimize: int = -1


@dataclass
class Artifact:
    """
    Compiled, loaded unit produced by the compiler service

    Attributes:
        module: Module object the code was executed into
        type_name: Name of the generated class
        namespace: Module name the class lives in
        source: Full generated module source
        path: File the module was loaded from (None when in memory)
    """
    module: ModuleType
    type_name: str
    namespace: str
    source: str
    path: Optional[str] = None

    def type_get(self) -> type:
        """Return the generated class object"""
        return getattr(self.module, self.type_name)


@dataclass
class CacheEntry:
    """Artifact cache entry: the artifact plus the type it resolved to"""
    artifact: Artifact
    type_name: str
    namespace: str
