"""
Python compiler service

Turns a generated module source into a loaded module. The engine treats
this service as opaque: compile(source, options) returns an Artifact or
raises CompileError carrying every diagnostic.

Compilation steps:
1. compile() the source, recording SyntaxWarnings
2. Convert SyntaxError/ValueError into diagnostics
3. Execute the code object into a fresh module whose globals hold the
   injected references (or write the module to disk and import it from
   there when an output directory is given)
4. Register the source with linecache so tracebacks show generated lines
"""

import inspect
import linecache
import sys
import traceback
import types
import warnings
import importlib.util
from pathlib import Path
from typing import List, Optional

from ..models.units import Artifact, CompileOptions, Diagnostic
from .errors import CompileError
from .log import LOG


class PythonCompiler:
    """Compile generated module source with the running interpreter"""

    def compile(self, source: str, options: CompileOptions) -> Artifact:
        """
        Compile and load a generated module

        Args:
            source: Complete module source
            options: Module name, expected type, references, search paths,
                     output path and optimization level

        Returns:
            Artifact holding the loaded module and its generated class

        Raises:
            CompileError: With all diagnostics if compilation or module
                          execution fails
        """
        filename = self.filename_make(options)
        diagnostics: List[Diagnostic] = []
        code = None

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                code = compile(source, filename, "exec", optimize=options.optimize)
            except SyntaxError as e:
                diagnostics.append(Diagnostic("error", e.msg, e.lineno or 0, e.offset or 0))
            except ValueError as e:
                diagnostics.append(Diagnostic("error", str(e)))

        for warning in caught:
            if issubclass(warning.category, SyntaxWarning):
                diagnostics.append(Diagnostic("warning", str(warning.message), warning.lineno or 0))

        if code is None:
            raise CompileError(diagnostics, source)

        for warning in diagnostics:
            LOG(f"Compiler {warning}", level=2)

        self.searchPaths_add(options.search_paths)
        self.linecache_update(filename, source)

        if options.output_path:
            module = self.module_loadFromFile(source, filename, options)
        else:
            module = types.ModuleType(options.module_name)
            module.__file__ = filename
            module.__dict__.update(options.references)
            self.module_exec(code, module, filename, source)

        type_name = options.type_name or self.firstClass_find(module)
        if not type_name or not isinstance(getattr(module, type_name, None), type):
            raise CompileError(
                [Diagnostic("error", f"Generated module defines no class '{type_name or ''}'")],
                source,
            )

        LOG(f"Compiled {options.module_name}.{type_name}", level=2)

        return Artifact(
            module=module,
            type_name=type_name,
            namespace=options.module_name,
            source=source,
            path=filename if options.output_path else None,
        )

    @staticmethod
    def filename_make(options: CompileOptions) -> str:
        """
        Source filename of a generated module

        Modules written to disk get their own `<output_path>/<module_name>.py`
        so every cached artifact keeps its file and its linecache entry.
        """
        if options.output_path:
            return str(Path(options.output_path) / f"{options.module_name}.py")
        return f"<{options.module_name}>"

    def module_exec(self, code: types.CodeType, module: types.ModuleType, filename: str, source: str) -> None:
        """
        Run module level code, reporting failures as diagnostics

        Raises:
            CompileError: If module execution raises (e.g. a failed import)
        """
        sys.modules[module.__name__] = module
        try:
            exec(code, module.__dict__)
        except Exception as e:
            sys.modules.pop(module.__name__, None)
            raise CompileError(
                [Diagnostic("error", f"{type(e).__name__}: {e}", self.errorLine_find(e, filename))],
                source,
            ) from e

    def module_loadFromFile(self, source: str, path: str, options: CompileOptions) -> types.ModuleType:
        """Write the module to disk and import it from there"""
        file = Path(path)
        file.parent.mkdir(parents=True, exist_ok=True)
        file.write_text(source, encoding="utf-8")
        LOG(f"Wrote generated module {file}", level=2)

        spec = importlib.util.spec_from_file_location(options.module_name, str(file))
        if spec is None or spec.loader is None:
            raise CompileError([Diagnostic("error", f"Cannot load generated module from {file}")], source)
        module = importlib.util.module_from_spec(spec)
        module.__dict__.update(options.references)
        sys.modules[options.module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(options.module_name, None)
            raise CompileError(
                [Diagnostic("error", f"{type(e).__name__}: {e}", self.errorLine_find(e, str(file)))],
                source,
            ) from e
        return module

    @staticmethod
    def firstClass_find(module: types.ModuleType) -> Optional[str]:
        """Name of the first class defined by the module itself"""
        for name, value in module.__dict__.items():
            if inspect.isclass(value) and value.__module__ == module.__name__:
                return name
        return None

    @staticmethod
    def errorLine_find(exception: BaseException, filename: str) -> int:
        """Line of the generated source an exception was raised from"""
        line = 0
        for frame in traceback.extract_tb(exception.__traceback__):
            if frame.filename == filename:
                line = frame.lineno or 0
        return line

    @staticmethod
    def searchPaths_add(paths: List[str]) -> None:
        for path in paths:
            if path not in sys.path:
                sys.path.append(path)

    @staticmethod
    def linecache_update(filename: str, source: str) -> None:
        linecache.cache[filename] = (len(source), None, source.splitlines(True), filename)
