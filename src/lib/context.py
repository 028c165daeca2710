"""
Per-render execution context exposed to generated code as `Script`

A ScriptContext is created for every top-level render and handed to the
generated method as its second parameter. Generated code reads the model
from it, writes output through its ScriptWriter and uses it for the
ambient page values (title, layout, sections) and for partial renders.

Example template use:
    {{% Script.title = "Home" %}}
    <h1>{{ Script.title }}</h1>
    {{ Script.render_partial("~/nav.html", Model.Menu) }}
"""

import io
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from .encoding import RawString, html_encode, text_make
from .errors import ParseError

if TYPE_CHECKING:
    from .partials import PartialRenderer


class ScriptWriter:
    """
    Output buffer for one render

    write() converts values to text, write_encoded() HTML encodes them
    (values with __html__ pass through unchanged).
    """

    def __init__(self) -> None:
        self.buffer = io.StringIO()

    def write(self, value: Any) -> None:
        self.buffer.write(text_make(value))

    def write_encoded(self, value: Any) -> None:
        self.buffer.write(html_encode(value))

    def write_line(self, value: Any = "") -> None:
        self.buffer.write(text_make(value))
        self.buffer.write("\n")

    def tell(self) -> int:
        """Current character position in the output"""
        return self.buffer.tell()

    def getvalue(self) -> str:
        return self.buffer.getvalue()

    def clear(self) -> None:
        self.buffer = io.StringIO()

    def __str__(self) -> str:
        return self.getvalue()


class ScriptContext:
    """
    The `Script` object of a render

    Attributes:
        model: Caller supplied model, held by reference
        title: Ambient page title, set by content and read by layouts
        layout: Layout path assigned by the page (informational at runtime)
        sections: Rendered section text by name, write-once per render
        writer: Output buffer of this render
        base_path: Root used for ~ and / partial paths
        document_path: File the template was read from (None for strings)
        renderer: Partial renderer used by render_partial()/render_script()
    """

    def __init__(
        self,
        model: Any = None,
        base_path: Optional[str] = None,
        document_path: Optional[str] = None,
        title: Optional[str] = None,
        sections: Optional[Dict[str, str]] = None,
        renderer: Optional["PartialRenderer"] = None,
    ) -> None:
        self.model = model
        self.title = title
        self.layout: Optional[str] = None
        self.sections: Dict[str, str] = sections if sections is not None else {}
        self.writer = ScriptWriter()
        self.base_path = base_path
        self.document_path = document_path
        self.renderer = renderer
        self._captures: List[Tuple[str, int]] = []

    # Composition placeholders; only reached when nothing was spliced in

    def render_content(self) -> None:
        """Marks where a layout page places the content page body"""
        return None

    def render_section(self, name: str) -> None:
        """Marks where a layout page places a content section"""
        return None

    def section(self, name: str) -> None:
        """Start recording output for a named section"""
        self._captures.append((name, self.writer.tell()))

    def end_section(self, name: Optional[str] = None) -> None:
        """
        Stop recording the innermost section and store its text

        The first rendering of a name wins; later ones leave the stored
        text unchanged.
        """
        if not self._captures:
            raise ParseError(f"end_section({name!r}) without a matching section()")
        open_name, start = self._captures.pop()
        if name is not None and name != open_name:
            raise ParseError(f"end_section({name!r}) does not match section({open_name!r})")
        self.sections.setdefault(open_name, self.writer.getvalue()[start:])

    # Partials

    def render_partial(self, path: str, model: Any = None) -> RawString:
        """
        Render another template file and return its output

        Args:
            path: Partial path (~ and / resolve against base_path, anything
                  else against the including document's directory)
            model: Model for the partial (defaults to None, not this model)

        Raises:
            ResolutionError: If the partial cannot be found
        """
        return self._renderer_get().partial_render(path, model, self)

    async def render_partial_async(self, path: str, model: Any = None) -> RawString:
        """Async variant of render_partial() for templates with awaited code"""
        return await self._renderer_get().partial_renderAsync(path, model, self)

    def render_script(self, script: str, model: Any = None) -> RawString:
        """Render a template string with the current configuration"""
        return self._renderer_get().script_render(script, model, self)

    async def render_script_async(self, script: str, model: Any = None) -> RawString:
        return await self._renderer_get().script_renderAsync(script, model, self)

    def _renderer_get(self) -> "PartialRenderer":
        if self.renderer is None:
            raise RuntimeError("No partial renderer is attached to this script context")
        return self.renderer

    # Output helpers

    @staticmethod
    def raw(value: Any) -> RawString:
        """Wrap a value so it is never HTML encoded"""
        return RawString(text_make(value))

    @staticmethod
    def html_encode(value: Any) -> str:
        return html_encode(value)

    def child_make(self, model: Any, document_path: Optional[str]) -> "ScriptContext":
        """
        Context for a partial render

        Shares base path, renderer and the sections dictionary; starts from
        this context's title with its own writer.
        """
        return ScriptContext(
            model=model,
            base_path=self.base_path,
            document_path=document_path,
            title=self.title,
            sections=self.sections,
            renderer=self.renderer,
        )
