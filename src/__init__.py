"""
scriptlet - Python templates with {{ }} delimiters, compiled and cached

Handlebars-like templates with embedded Python code, transpiled into
methods that are compiled once per process and invoked on every render.
"""

__version__ = "1.0.0"

from .lib import (
    ScriptParser,
    ScriptEngine,
    RawString,
    ErrorKind,
    ScriptError,
    ParseError,
    ResolutionError,
    CompileError,
    DictReader,
    LOG,
    state_connectToLogger,
    logging_enable,
    logging_disable,
    ScriptEvaluator,
)

__all__ = [
    "ScriptParser",
    "ScriptEngine",
    "RawString",
    "ErrorKind",
    "ScriptError",
    "ParseError",
    "ResolutionError",
    "CompileError",
    "DictReader",
    "LOG",
    "state_connectToLogger",
    "logging_enable",
    "logging_disable",
    "ScriptEvaluator",
    "__version__",
]
