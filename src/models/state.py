"""
Render state model and pipeline helper

Defines RenderState dataclass for the functional pipeline pattern and
the pipeline() helper for composing render stages.
"""

from typing import Any, Optional, TypeVar, List, Callable, TYPE_CHECKING
from dataclasses import dataclass, field

from .segments import Segment
from .units import ParsedUnit

# Forward reference for type hint - avoid circular import
if TYPE_CHECKING:
    from ..lib.context import ScriptContext


RS = TypeVar("RS", bound="RenderState")


@dataclass
class RenderState:
    """
    Central state container for one render (state bus pattern).

    This dataclass carries the render through the functional pipeline,
    with each stage adding new fields as the render progresses.

    Pipeline stages and their state additions:
        - Initial: script or scriptFile, model, basePath, isAsync, parent
        - source_read: script, basePath, documentPath
        - source_tokenize: segments
        - unit_transpile: parsedUnit
        - layout_compose: parsedUnit (root of the layout chain)
        - code_assemble: code, context

    Attributes:
        script: Template text (read from scriptFile when not given)
        scriptFile: Template file path for file renders
        model: Caller supplied model
        basePath: Root for ~ and / paths
        isAsync: Generate an `async def` method
        parent: Context of the including page for partial renders
        verbosity: Logging verbosity level (1-3)
        documentPath: Resolved path of the template file
        segments: Tokenizer output
        parsedUnit: Transpiled (and composed) page
        code: Complete method body with header and footer
        context: The Script object handed to generated code
    """

    # Call arguments
    script: Optional[str] = field(default=None)
    scriptFile: Optional[str] = field(default=None)
    model: Any = field(default=None)
    basePath: Optional[str] = field(default=None)
    isAsync: bool = field(default=False)
    parent: Optional["ScriptContext"] = field(default=None)
    verbosity: int = field(default=1)

    # Pipeline state
    documentPath: Optional[str] = field(default=None)
    segments: Optional[List[Segment]] = field(default=None)
    parsedUnit: Optional[ParsedUnit] = field(default=None)
    code: Optional[str] = field(default=None)
    context: Optional["ScriptContext"] = field(default=None)

    def copy(self: RS) -> RS:
        """
        Creates a shallow copy of the RenderState instance.

        Returns:
            A new RenderState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: RenderState, *stages: Callable[[RenderState], RenderState]
) -> RenderState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (RenderState) -> RenderState that receives
    the output of the previous stage and returns a new state.

    Args:
        initial_state: Starting RenderState
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final RenderState after all transformations

    Example:
        final_state = pipeline(
            initial_state,
            source_read,
            source_tokenize,
            unit_transpile,
            layout_compose,
            code_assemble
        )

    This is equivalent to:
        code_assemble(layout_compose(unit_transpile(source_tokenize(source_read(initial_state)))))

    But reads left-to-right instead of inside-out.
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
