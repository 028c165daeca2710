"""
Script compilation and execution engine

ScriptEngine compiles Python methods, snippets and classes on demand,
caches the compiled artifacts process-wide and invokes them. All public
entry points share one error model: errors are recorded on the engine
(error, error_type, error_message, last_exception) and None is returned,
unless throw_exceptions is set, in which case the recorded exception is
re-raised.

Example:
    >>> engine = ScriptEngine()
    >>> engine.evaluate("@0 + @1", 2, 3)
    5
    >>> engine.execute_method("def hello(self, name):\\n    return 'Hi ' + name", "hello", "Rick")
    'Hi Rick'
"""

import inspect
import re
import types
from typing import Any, Dict, List, Optional

from ..config.settings import AppSettings, appsettings
from ..models.units import CacheEntry, CompileOptions
from .cache import ArtifactCache, cacheKey_make, default_cache
from .compiler import PythonCompiler
from .errors import ErrorKind, ScriptRuntimeError, errorKind_classify
from .log import LOG, state_connectToLogger
from .utils import listing_make, source_dedent, source_indent, textWithLineNumbers_get, uniqueId_generate


# @0, @1, ... positional parameter placeholders (never a prefix of @10)
PARAMETER_PATTERN = re.compile(r'@(\d+)(?!\d)')

ASYNC_DEF_PATTERN = re.compile(r'^\s*async\s+def\s', re.MULTILINE)


class ScriptEngine:
    """
    Compile, cache and invoke generated Python code

    Attributes:
        namespaces: Modules imported at the top of every generated module
        references: Objects injected into generated module globals by name
        search_paths: Directories made importable before generated code loads
        cache: Artifact cache (process-wide default_cache unless injected)
        compiler: Compiler service
        generated_class_name: Class name used when this engine compiles
        generated_namespace: Module name of the last artifact used
        throw_exceptions: Re-raise recorded errors
        save_generated_code: Keep the last generated module source
        output_artifact: Directory generated modules are written to
        verbosity: LOG() verbosity
    """

    def __init__(
        self,
        namespaces: Optional[List[str]] = None,
        cache: Optional[ArtifactCache] = None,
        compiler: Optional[PythonCompiler] = None,
        throw_exceptions: Optional[bool] = None,
        output_artifact: Optional[str] = None,
        verbosity: Optional[int] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        self.settings = settings or appsettings
        self.namespaces: List[str] = []
        self.add_namespaces(*(namespaces if namespaces is not None else self.settings.default_namespaces))
        self.references: Dict[str, Any] = {}
        self.search_paths: List[str] = []

        self.cache = cache if cache is not None else default_cache
        self.compiler = compiler or PythonCompiler()

        self.generated_class_name = self.settings.className_make(uniqueId_generate())
        self.generated_namespace = self.settings.generated_namespace
        self.throw_exceptions = self.settings.throw_exceptions if throw_exceptions is None else throw_exceptions
        self.save_generated_code = self.settings.save_generated_code
        self.output_artifact = output_artifact if output_artifact is not None else self.settings.output_artifact
        self.verbosity = self.settings.verbosity if verbosity is None else verbosity

        self.generated_class_code: Optional[str] = None
        self.error_clear()

    # Configuration

    def add_namespace(self, namespace: str) -> None:
        """
        Import a module in every generated module

        Accepts a module name ("json") or a complete import statement
        ("from pathlib import Path").
        """
        namespace = namespace.strip()
        if namespace and namespace not in self.namespaces:
            self.namespaces.append(namespace)

    def add_namespaces(self, *namespaces: str) -> None:
        for namespace in namespaces:
            self.add_namespace(namespace)

    def add_reference(self, reference: Any) -> None:
        """
        Make a reference available to generated code

        Args:
            reference: A directory or archive path (added to sys.path), or
                       a module, class or function (injected into module
                       globals under its own name)
        """
        if isinstance(reference, str):
            if reference not in self.search_paths:
                self.search_paths.append(reference)
            return
        name = getattr(reference, "__name__", None)
        if not name:
            raise TypeError(f"Cannot reference {reference!r}: it has no __name__")
        if isinstance(reference, types.ModuleType):
            name = name.rpartition(".")[2]
        self.references[name] = reference

    def add_references(self, *references: Any) -> None:
        for reference in references:
            self.add_reference(reference)

    # Error state

    def error_clear(self) -> None:
        self.error = False
        self.error_type = ErrorKind.NONE
        self.error_message = ""
        self.last_exception: Optional[BaseException] = None

    def error_set(self, exception: BaseException) -> None:
        """
        Record a failure and re-raise it when throw_exceptions is set

        Must be called from inside the handling `except` block.
        """
        self.error = True
        self.error_type = errorKind_classify(exception)
        self.error_message = str(exception) or type(exception).__name__
        self.last_exception = exception
        LOG(f"{self.error_type.value} error: {self.error_message}", level=2)
        if self.throw_exceptions:
            raise exception

    @property
    def generated_class_code_with_line_numbers(self) -> str:
        return textWithLineNumbers_get(self.generated_class_code)

    # Code generation

    @staticmethod
    def parameters_substitute(code: str, parameters: tuple) -> str:
        """
        Rewrite @N placeholders to parameters[N]

        Only indexes below len(parameters) are replaced; @10 is never read
        as @1 followed by 0.

        Example:
            >>> ScriptEngine.parameters_substitute("@0 + @10", tuple(range(11)))
            'parameters[0] + parameters[10]'
        """
        def replace(match: re.Match) -> str:
            index = int(match.group(1))
            return f"parameters[{index}]" if index < len(parameters) else match.group(0)

        return PARAMETER_PATTERN.sub(replace, code)

    @staticmethod
    def codeMethod_make(code: str, is_async: bool = False, name: str = "execute_code") -> str:
        """Wrap statements as a `def name(self, *parameters)` method"""
        body = source_indent(source_dedent(code).strip("\n"), "    ")
        prefix = "async def" if is_async else "def"
        return f"{prefix} {name}(self, *parameters):\n{body}\n    return None\n"

    @staticmethod
    def namespaceLine_make(namespace: str) -> str:
        if namespace.startswith(("import ", "from ")):
            return namespace
        return f"import {namespace}"

    def module_build(self, method_source: str) -> str:
        """
        Assemble a module: import lines, then the generated class wrapping
        the method source
        """
        imports = "".join(self.namespaceLine_make(ns) + "\n" for ns in self.namespaces)
        method = source_indent(source_dedent(method_source).strip("\n"), "    ")
        return f"{imports}\n\nclass {self.generated_class_name}:\n{method}\n"

    def compileMode_get(self, is_async: bool) -> str:
        return self.settings.compileMode_make(is_async)

    # Compilation

    def artifact_getOrCompile(self, method_source: str, mode: str) -> CacheEntry:
        """
        Return the cached artifact for a method, compiling it on a miss

        Args:
            method_source: One or more complete method definitions
            mode: Compile mode folded into the cache key

        Raises:
            CompileError: If the compiler rejects the module (not cached)
        """
        key = cacheKey_make(method_source, mode)
        entry = self.cache.get(key)
        if entry is not None:
            LOG(f"Cache hit {key[:12]} -> {entry.namespace}.{entry.type_name}", level=3)
            self.generated_class_name = entry.type_name
            self.generated_namespace = entry.namespace
            if self.save_generated_code:
                self.generated_class_code = entry.artifact.source
            return entry

        module_source = self.module_build(method_source)
        if self.save_generated_code:
            self.generated_class_code = module_source
        LOG(f"Cache miss {key[:12]}, compiling", level=2)
        if self.verbosity >= 3:
            LOG(f"Generated module {self.generated_class_name}:\n{listing_make(module_source)}", level=3)

        entry = self.module_compile(module_source, self.generated_class_name)
        self.cache.set(key, entry)
        self.generated_namespace = entry.namespace
        return entry

    def module_compile(self, module_source: str, type_name: Optional[str]) -> CacheEntry:
        options = CompileOptions(
            module_name=f"{self.settings.generated_namespace}_{uniqueId_generate()}",
            type_name=type_name,
            references=dict(self.references),
            search_paths=list(self.search_paths),
            output_path=self.output_artifact,
            optimize=self.settings.compile_optimize,
        )
        artifact = self.compiler.compile(module_source, options)
        return CacheEntry(artifact=artifact, type_name=artifact.type_name, namespace=artifact.namespace)

    # Invocation

    def instance_create(self, entry: CacheEntry) -> Any:
        """Create a fresh instance of an artifact's generated class"""
        return entry.artifact.type_get()()

    def method_invoke(self, instance: Any, method_name: str, *parameters: Any) -> Any:
        """
        Call a method looked up by name at runtime

        Raises:
            ScriptRuntimeError: If the instance has no such method
        """
        method = getattr(instance, method_name, None)
        if method is None or not callable(method):
            raise ScriptRuntimeError(f"Method '{method_name}' not found on {type(instance).__name__}")
        return method(*parameters)

    def execute_method(self, code: str, method_name: str, *parameters: Any) -> Any:
        """
        Compile one or more methods into the generated class and call one

        Calling an `async def` method this way returns the coroutine,
        un-awaited; use execute_method_async() to get its result.

        Args:
            code: Complete method definitions (with `self` parameter)
            method_name: Method to invoke
            *parameters: Positional arguments for the method

        Returns:
            The method's result, or None on error
        """
        state_connectToLogger(self)
        self.error_clear()
        try:
            entry = self.artifact_getOrCompile(code, self.compileMode_get(bool(ASYNC_DEF_PATTERN.search(code))))
            instance = self.instance_create(entry)
            return self.method_invoke(instance, method_name, *parameters)
        except Exception as e:
            self.error_set(e)
        return None

    async def execute_method_async(self, code: str, method_name: str, *parameters: Any) -> Any:
        """Like execute_method(), awaiting the result when it is awaitable"""
        state_connectToLogger(self)
        self.error_clear()
        try:
            entry = self.artifact_getOrCompile(code, self.compileMode_get(bool(ASYNC_DEF_PATTERN.search(code))))
            instance = self.instance_create(entry)
            result = self.method_invoke(instance, method_name, *parameters)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            self.error_set(e)
        return None

    def execute_code(self, code: str, *parameters: Any) -> Any:
        """
        Run a block of statements

        The statements become the body of `execute_code(self, *parameters)`;
        @N placeholders are rewritten to parameters[N].

        Example:
            >>> engine.execute_code("total = sum(parameters)\\nreturn total * @0", 2, 3)
            10
        """
        code = self.parameters_substitute(code, parameters)
        return self.execute_method(self.codeMethod_make(code), "execute_code", *parameters)

    async def execute_code_async(self, code: str, *parameters: Any) -> Any:
        """Run a block of statements that may use await"""
        code = self.parameters_substitute(code, parameters)
        return await self.execute_method_async(self.codeMethod_make(code, is_async=True), "execute_code", *parameters)

    def evaluate(self, expression: str, *parameters: Any) -> Any:
        """Evaluate a single expression and return its value"""
        return self.execute_code(self.returnStatement_make(expression), *parameters)

    async def evaluate_async(self, expression: str, *parameters: Any) -> Any:
        return await self.execute_code_async(self.returnStatement_make(expression), *parameters)

    @staticmethod
    def returnStatement_make(expression: str) -> str:
        expression = expression.strip()
        if "\n" in expression:
            expression = f"({expression})"
        return f"return {expression}"

    def compile_class(self, source: str) -> Any:
        """
        Compile a complete module and instantiate its first class

        Returns:
            Instance of the first class the source defines, or None on error
        """
        cls = self.compile_class_to_type(source)
        if cls is None:
            return None
        try:
            return cls()
        except Exception as e:
            self.error_set(e)
        return None

    def compile_class_to_type(self, source: str) -> Optional[type]:
        """
        Compile a complete module and return its first class

        The source is compiled as written (no namespace imports are added)
        and cached under its own text.
        """
        state_connectToLogger(self)
        self.error_clear()
        try:
            if self.save_generated_code:
                self.generated_class_code = source
            key = cacheKey_make(source, "class:" + self.compileMode_get(False))
            entry = self.cache.get(key)
            if entry is None:
                LOG(f"Cache miss {key[:12]}, compiling class module", level=2)
                entry = self.module_compile(source, None)
                self.cache.set(key, entry)
            self.generated_class_name = entry.type_name
            self.generated_namespace = entry.namespace
            return entry.artifact.type_get()
        except Exception as e:
            self.error_set(e)
        return None
