"""
Partial path resolution, template readers and partial rendering

Partials are independent renders: each one is read, tokenized,
transpiled, composed with its own layout (if any), compiled and executed
on its own, and its output is written into the including page at the
call site.

Path forms:
    ~/nav.html, /nav.html, \\nav.html   relative to the base path
    nav.html, ./nav.html, ../nav.html  relative to the including document
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, TYPE_CHECKING, runtime_checkable

from .encoding import RawString
from .log import LOG
from .utils import path_normalize

if TYPE_CHECKING:
    from .context import ScriptContext
    from .parser import ScriptParser


ROOT_MARKERS = ("~", "/", "\\")


def path_resolve(raw: str, base_path: Optional[str] = None, document_dir: Optional[str] = None) -> str:
    """
    Resolve a partial or layout path

    Args:
        raw: Path as written in the template
        base_path: Root that ~, / and \\ prefixes refer to
        document_dir: Directory of the including document

    Returns:
        Normalized path

    Example:
        >>> path_resolve("~/partials/nav.html", base_path="/site")
        '/site/partials/nav.html'
        >>> path_resolve("card.html", base_path="/site", document_dir="/site/views")
        '/site/views/card.html'
    """
    if raw.startswith(ROOT_MARKERS):
        if base_path:
            return path_normalize(os.path.join(base_path, raw.lstrip("~/\\")))
        if raw.startswith("~"):
            return path_normalize(os.path.join(os.getcwd(), raw.lstrip("~/\\")))
        return path_normalize(raw)

    if os.path.isabs(raw):
        return path_normalize(raw)

    root = document_dir or base_path or os.getcwd()
    return path_normalize(os.path.join(root, raw))


@runtime_checkable
class TemplateReader(Protocol):
    """Source of template text: read(path) returns the text or None when missing"""

    def read(self, path: str) -> Optional[str]:
        ...


class FileSystemReader:
    """Read templates from disk"""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def read(self, path: str) -> Optional[str]:
        file = Path(path)
        if not file.is_file():
            return None
        return file.read_text(encoding=self.encoding)


class DictReader:
    """
    Read templates from an in-memory mapping

    Keys are normalized like resolved paths, so "views/./a.html" and
    "views/a.html" name the same template.

    Example:
        >>> reader = DictReader({"/site/nav.html": "<nav>{{ Model }}</nav>"})
        >>> reader.read("/site/nav.html")
        '<nav>{{ Model }}</nav>'
    """

    def __init__(self, templates: Dict[str, str]) -> None:
        self.templates = {path_normalize(path): text for path, text in templates.items()}

    def read(self, path: str) -> Optional[str]:
        return self.templates.get(path_normalize(path))


class PartialRenderer:
    """
    Render partials and nested scripts for a ScriptContext

    Every render uses a child of the owning ScriptParser: same delimiters,
    namespaces, references, reader and cache, but always raising so that a
    failing partial fails the including render.
    """

    def __init__(self, parser: "ScriptParser") -> None:
        self.parser = parser

    def path_get(self, raw_path: str, parent: "ScriptContext") -> str:
        document_dir = os.path.dirname(parent.document_path) if parent.document_path else None
        return path_resolve(raw_path, parent.base_path, document_dir)

    def partial_render(self, raw_path: str, model: Any, parent: "ScriptContext") -> RawString:
        """
        Render a partial file synchronously

        Raises:
            ResolutionError: If the partial cannot be read
        """
        path = self.path_get(raw_path, parent)
        LOG(f"Rendering partial {path}", level=2)
        child = self.parser.child_make()
        result = child.execute_script_file(path, model, base_path=parent.base_path, parent=parent)
        return RawString(result or "")

    async def partial_renderAsync(self, raw_path: str, model: Any, parent: "ScriptContext") -> RawString:
        path = self.path_get(raw_path, parent)
        LOG(f"Rendering partial {path} (async)", level=2)
        child = self.parser.child_make()
        result = await child.execute_script_file_async(path, model, base_path=parent.base_path, parent=parent)
        return RawString(result or "")

    def script_render(self, script: str, model: Any, parent: "ScriptContext") -> RawString:
        """Render a template string as a nested script"""
        child = self.parser.child_make()
        result = child.execute_script(script, model, base_path=parent.base_path, parent=parent)
        return RawString(result or "")

    async def script_renderAsync(self, script: str, model: Any, parent: "ScriptContext") -> RawString:
        child = self.parser.child_make()
        result = await child.execute_script_async(script, model, base_path=parent.base_path, parent=parent)
        return RawString(result or "")
