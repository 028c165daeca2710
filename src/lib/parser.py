"""
Script parser: render templates with embedded Python

ScriptParser is the public template entry point. A render runs through
the pipeline:

    source_read -> source_tokenize -> unit_transpile -> layout_compose
        -> code_assemble -> (engine) compile, cache, invoke

The generated method receives the model and the ScriptContext as
parameters; neither is ever written into generated source, so templates
that transpile identically share one compiled artifact.

Example:
    >>> parser = ScriptParser()
    >>> parser.execute_script("Hello {{ Model['name'] }}!", {"name": "Rick"})
    'Hello Rick!'
    >>> parser.execute_script("{{ Model.missing }}", object())
    >>> parser.error_type
    <ErrorKind.RUNTIME: 'runtime'>
"""

import os
from dataclasses import replace
from typing import Any, Optional

from ..config.settings import AppSettings, appsettings
from ..models.segments import DelimiterSet
from ..models.state import RenderState, pipeline
from ..models.units import ParsedUnit
from .composer import Composer, LayoutLoader
from .context import ScriptContext
from .directives import DirectiveRegistry
from .engine import ScriptEngine
from .errors import ErrorKind, ResolutionError
from .lexer import template_highlight
from .log import LOG, state_connectToLogger
from .partials import FileSystemReader, PartialRenderer, TemplateReader, path_resolve
from .tokenizer import Tokenizer
from .transpiler import Transpiler
from .utils import path_normalize, textWithLineNumbers_get


METHOD_HEADER = (
    "Model = parameters[0]\n"
    "Script = parameters[1]\n"
    "writer = Script.writer\n"
)

METHOD_FOOTER = "return writer.getvalue()\n"


class ScriptParser:
    """
    Render {{ }} templates through a ScriptEngine

    Attributes:
        engine: Compiles, caches and invokes the generated code
        delimiters: Marker table used for every template of this parser
        reader: Template source for files, layouts and partials
        composer: Layout and section composer
        additional_method_header_code: Statements inserted after the
            generated method header (Model/Script/writer bindings)
    """

    def __init__(
        self,
        engine: Optional[ScriptEngine] = None,
        delimiters: Optional[DelimiterSet] = None,
        reader: Optional[TemplateReader] = None,
        throw_exceptions: Optional[bool] = None,
        additional_method_header_code: str = "",
        settings: Optional[AppSettings] = None,
    ) -> None:
        self.settings = settings or appsettings
        self.engine = engine or ScriptEngine(settings=self.settings)
        if throw_exceptions is not None:
            self.engine.throw_exceptions = throw_exceptions
        self.delimiters = delimiters or DelimiterSet.from_settings(self.settings)
        self.reader: TemplateReader = reader or FileSystemReader()
        self.registry = DirectiveRegistry()
        self.composer = Composer(self.registry, self.settings.max_layout_depth)
        self.additional_method_header_code = additional_method_header_code

    # Configuration forwarded to the engine

    def add_namespace(self, namespace: str) -> None:
        self.engine.add_namespace(namespace)

    def add_namespaces(self, *namespaces: str) -> None:
        self.engine.add_namespaces(*namespaces)

    def add_reference(self, reference: Any) -> None:
        self.engine.add_reference(reference)

    def add_references(self, *references: Any) -> None:
        self.engine.add_references(*references)

    @property
    def throw_exceptions(self) -> bool:
        return self.engine.throw_exceptions

    @throw_exceptions.setter
    def throw_exceptions(self, value: bool) -> None:
        self.engine.throw_exceptions = value

    @property
    def html_encode_by_default(self) -> bool:
        return self.delimiters.html_encode_expressions_by_default

    @html_encode_by_default.setter
    def html_encode_by_default(self, value: bool) -> None:
        self.delimiters = self.delimiters.override(html_encode_expressions_by_default=value)

    @property
    def verbosity(self) -> int:
        return self.engine.verbosity

    # Error state mirrored from the engine

    @property
    def error(self) -> bool:
        return self.engine.error

    @property
    def error_type(self) -> ErrorKind:
        return self.engine.error_type

    @property
    def error_message(self) -> str:
        return self.engine.error_message

    @property
    def last_exception(self) -> Optional[BaseException]:
        return self.engine.last_exception

    @property
    def generated_class_code(self) -> Optional[str]:
        return self.engine.generated_class_code

    @property
    def generated_class_code_with_line_numbers(self) -> str:
        return self.engine.generated_class_code_with_line_numbers

    # Public entry points

    def execute_script(
        self,
        script: str,
        model: Any = None,
        base_path: Optional[str] = None,
        parent: Optional[ScriptContext] = None,
    ) -> Optional[str]:
        """
        Render a template string

        Args:
            script: Template text
            model: Value exposed to the template as `Model`
            base_path: Root for ~ and / partial and layout paths
            parent: Context of the including page (partial renders only)

        Returns:
            Rendered text, or None on error (see error/error_message)
        """
        state = RenderState(script=script, model=model, basePath=base_path, parent=parent,
                            verbosity=self.verbosity)
        return self.render(state)

    async def execute_script_async(
        self,
        script: str,
        model: Any = None,
        base_path: Optional[str] = None,
        parent: Optional[ScriptContext] = None,
    ) -> Optional[str]:
        """Render a template string whose code may use await"""
        state = RenderState(script=script, model=model, basePath=base_path, parent=parent,
                            isAsync=True, verbosity=self.verbosity)
        return await self.render_async(state)

    def execute_script_file(
        self,
        script_file: str,
        model: Any = None,
        base_path: Optional[str] = None,
        parent: Optional[ScriptContext] = None,
    ) -> Optional[str]:
        """
        Render a template file

        base_path defaults to the directory of script_file. Layouts and
        partials referenced by the file are read through the same reader.
        """
        state = RenderState(scriptFile=script_file, model=model, basePath=base_path, parent=parent,
                            verbosity=self.verbosity)
        return self.render(state)

    async def execute_script_file_async(
        self,
        script_file: str,
        model: Any = None,
        base_path: Optional[str] = None,
        parent: Optional[ScriptContext] = None,
    ) -> Optional[str]:
        state = RenderState(scriptFile=script_file, model=model, basePath=base_path, parent=parent,
                            isAsync=True, verbosity=self.verbosity)
        return await self.render_async(state)

    def parse_script_to_code(self, script: str) -> Optional[str]:
        """
        Transpile a template without compiling or running it

        Layout and section directives are left unresolved.

        Returns:
            Generated method body, or None on error
        """
        state_connectToLogger(self.engine)
        self.engine.error_clear()
        try:
            segments = Tokenizer(script, self.delimiters, self.settings.strip_code_block_newline).tokenize()
            return Transpiler(self.delimiters, self.registry).transpile(segments).body
        except Exception as e:
            self.engine.error_set(e)
        return None

    # Rendering

    def render(self, state: RenderState) -> Optional[str]:
        state = self.state_prepare(state)
        if state is None:
            return None
        method = ScriptEngine.codeMethod_make(state.code, is_async=False)
        return self.engine.execute_method(method, "execute_code", state.model, state.context)

    async def render_async(self, state: RenderState) -> Optional[str]:
        state = self.state_prepare(state)
        if state is None:
            return None
        method = ScriptEngine.codeMethod_make(state.code, is_async=True)
        return await self.engine.execute_method_async(method, "execute_code", state.model, state.context)

    def state_prepare(self, state: RenderState) -> Optional[RenderState]:
        """
        Run the source stages of the render pipeline

        Parse and resolution failures are recorded on the engine.

        Returns:
            State carrying the generated code and its context, or None on error
        """
        state_connectToLogger(state)
        self.engine.error_clear()
        try:
            return pipeline(
                state,
                self.source_read,
                self.source_tokenize,
                self.unit_transpile,
                self.layout_compose,
                self.code_assemble,
            )
        except Exception as e:
            self.engine.error_set(e)
        return None

    def child_make(self) -> "ScriptParser":
        """
        Parser for a nested render (partial or render_script)

        Shares configuration and cache with this parser and always raises,
        so nested failures fail the including render.
        """
        engine = ScriptEngine(
            namespaces=list(self.engine.namespaces),
            cache=self.engine.cache,
            compiler=self.engine.compiler,
            throw_exceptions=True,
            verbosity=self.engine.verbosity,
            settings=self.settings,
        )
        engine.references = dict(self.engine.references)
        engine.search_paths = list(self.engine.search_paths)
        return ScriptParser(
            engine=engine,
            delimiters=self.delimiters,
            reader=self.reader,
            additional_method_header_code=self.additional_method_header_code,
            settings=self.settings,
        )

    # Pipeline stages

    def source_read(self, inputstate: RenderState) -> RenderState:
        """
        Load the template text of a file render

        Raises:
            ResolutionError: If the file cannot be read
        """
        state = inputstate.copy()
        if state.scriptFile is None:
            return state

        path = path_normalize(state.scriptFile)
        text = self.reader.read(path)
        if text is None:
            raise ResolutionError(f"Template not found: {path}", path=path)

        state.script = text
        state.documentPath = path
        if not state.basePath:
            state.basePath = os.path.dirname(path) or None
        LOG(f"Read {len(text)} characters from {path}", level=2)
        return state

    def source_tokenize(self, inputstate: RenderState) -> RenderState:
        state = inputstate.copy()
        if state.verbosity >= 3:
            LOG(f"Template source:\n{textWithLineNumbers_get(template_highlight(state.script or ''))}", level=3)
        tokenizer = Tokenizer(state.script or "", self.delimiters, self.settings.strip_code_block_newline)
        state.segments = tokenizer.tokenize()
        LOG(f"Tokenized {len(state.segments)} segments", level=3)
        return state

    def unit_transpile(self, inputstate: RenderState) -> RenderState:
        state = inputstate.copy()
        unit = Transpiler(self.delimiters, self.registry, state.documentPath).transpile(state.segments or [])
        document_dir = os.path.dirname(state.documentPath) if state.documentPath else None
        for partial in unit.partials:
            partial.resolved_path = path_resolve(partial.path, state.basePath, document_dir)
        state.parsedUnit = unit
        return state

    def layout_compose(self, inputstate: RenderState) -> RenderState:
        """Compose the page with its layout chain and splice sections"""
        state = inputstate.copy()
        unit = self.composer.layout_resolve(state.parsedUnit, self.layoutLoader_make(state.basePath))
        state.parsedUnit = replace(unit, body=self.composer.sections_splice(unit))
        return state

    def code_assemble(self, inputstate: RenderState) -> RenderState:
        """Wrap the body with the method header and footer and build the context"""
        state = inputstate.copy()
        unit = state.parsedUnit

        header = METHOD_HEADER
        if self.additional_method_header_code.strip():
            header += self.additional_method_header_code.strip("\n") + "\n"
        state.code = header + unit.body + METHOD_FOOTER

        if state.parent is not None:
            context = state.parent.child_make(state.model, state.documentPath)
        else:
            context = ScriptContext(
                model=state.model,
                base_path=state.basePath,
                document_path=state.documentPath,
                renderer=PartialRenderer(self),
            )
        if unit.title is not None:
            context.title = unit.title
        state.context = context
        return state

    def layoutLoader_make(self, base_path: Optional[str]) -> LayoutLoader:
        """Loader that reads and transpiles the layout a unit refers to"""

        def layout_load(raw_path: str, referrer: ParsedUnit) -> ParsedUnit:
            document_dir = os.path.dirname(referrer.source_path) if referrer.source_path else None
            path = path_resolve(raw_path, base_path, document_dir)
            text = self.reader.read(path)
            if text is None:
                raise ResolutionError(f"Layout page not found: {path}", path=path)
            segments = Tokenizer(text, self.delimiters, self.settings.strip_code_block_newline).tokenize()
            return Transpiler(self.delimiters, self.registry, path).transpile(segments)

        return layout_load
