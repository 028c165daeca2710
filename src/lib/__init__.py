"""
scriptlet - Python templates with {{ }} delimiters, compiled and cached

Transpiles templates with embedded Python into methods, compiles them on
demand and caches the compiled artifacts process-wide.
"""

__version__ = "1.0.0"

from .parser import ScriptParser
from .engine import ScriptEngine
from .compiler import PythonCompiler
from .cache import ArtifactCache, MemoryArtifactCache, default_cache
from .context import ScriptContext, ScriptWriter
from .encoding import RawString, html_encode
from .errors import (
    ErrorKind,
    ScriptError,
    ParseError,
    ResolutionError,
    CompileError,
    ScriptRuntimeError,
)
from .partials import DictReader, FileSystemReader, TemplateReader, path_resolve
from .directives import DirectiveRegistry
from .evaluator import ScriptEvaluator
from .log import LOG, logging_disable, logging_enable, state_connectToLogger

__all__ = [
    "ScriptParser",
    "ScriptEngine",
    "PythonCompiler",
    "ArtifactCache",
    "MemoryArtifactCache",
    "default_cache",
    "ScriptContext",
    "ScriptWriter",
    "RawString",
    "html_encode",
    "ErrorKind",
    "ScriptError",
    "ParseError",
    "ResolutionError",
    "CompileError",
    "ScriptRuntimeError",
    "DictReader",
    "FileSystemReader",
    "TemplateReader",
    "path_resolve",
    "DirectiveRegistry",
    "LOG",
    "state_connectToLogger",
    "logging_enable",
    "logging_disable",
    "ScriptEvaluator",
    "__version__",
]
