"""
Error taxonomy for template parsing, resolution, compilation and execution

Every failure the engine records carries an ErrorKind so callers can tell
a template typo (PARSE) from a missing file (RESOLUTION), a bad Python
statement (COMPILE) or an exception raised by the executed code (RUNTIME).
"""

from enum import Enum
from typing import List, Optional

from ..models.units import Diagnostic


class ErrorKind(Enum):
    """Kind of the last error recorded by a ScriptEngine"""
    NONE = "none"
    PARSE = "parse"
    RESOLUTION = "resolution"
    COMPILE = "compile"
    RUNTIME = "runtime"


class ScriptError(Exception):
    """Base class for errors raised by scriptlet itself"""

    kind: ErrorKind = ErrorKind.RUNTIME

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ParseError(ScriptError):
    """
    Unterminated or mismatched delimiter markers, or unbalanced blocks

    Attributes:
        marker: The offending marker text (e.g., "{{%")
        position: Character offset in the template
        line_number: 1-based line in the template
    """

    kind = ErrorKind.PARSE

    def __init__(
        self,
        message: str,
        marker: Optional[str] = None,
        position: int = 0,
        line_number: int = 0,
    ) -> None:
        super().__init__(message)
        self.marker = marker
        self.position = position
        self.line_number = line_number


class ResolutionError(ScriptError):
    """A referenced layout or partial could not be found"""

    kind = ErrorKind.RESOLUTION

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class CompileError(ScriptError):
    """
    The compiler service rejected the generated source

    The message aggregates every diagnostic, one per line, so a single
    string carries all line numbers.
    """

    kind = ErrorKind.COMPILE

    def __init__(self, diagnostics: List[Diagnostic], source: str = "") -> None:
        self.diagnostics = diagnostics
        self.source = source
        super().__init__(self.message_build(diagnostics))

    @staticmethod
    def message_build(diagnostics: List[Diagnostic]) -> str:
        return "\n".join(str(d) for d in diagnostics)


class ScriptRuntimeError(ScriptError):
    """Failure while instantiating or invoking compiled code"""

    kind = ErrorKind.RUNTIME


def errorKind_classify(exception: BaseException) -> ErrorKind:
    """Map any exception to the ErrorKind it is recorded under"""
    if isinstance(exception, ScriptError):
        return exception.kind
    return ErrorKind.RUNTIME
