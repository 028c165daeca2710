"""
Centralized logging using Loguru with context-aware verbosity.

This module provides a LOG() function that respects the verbosity of the
currently connected state (a ScriptEngine, ScriptParser or RenderState)
without requiring explicit state passing.

Features:
- Context-aware logging tied to the connected state's verbosity
- Rich formatting with timestamps, colors, and metadata
- Thread-safe using contextvars
- Works throughout lib modules without passing state

Records are disabled by default; call logging_enable() to route them to
a sink.

Usage:
    from scriptlet.lib.log import LOG, logging_enable, state_connectToLogger

    # Once, in the host application:
    logging_enable()

    # At start of a public entry point:
    state_connectToLogger(engine)

    # Anywhere in that context:
    LOG("This message appears if verbosity >= 1", level=1)
    LOG("Cache hit details appear if verbosity >= 2", level=2)
    LOG("Generated source appears if verbosity >= 3", level=3)
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

# Context variable to hold the currently connected state
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

# Configure loguru with scriptlet-specific format
logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

# Silent until the host calls logging_enable(); host handlers are left alone
logger.disable("scriptlet")


def logging_enable(sink: Any = sys.stderr, level: str = "DEBUG") -> int:
    """
    Show scriptlet log records on a sink

    Args:
        sink: Any loguru sink (stream, path, callable)
        level: Minimum loguru level for the sink

    Returns:
        Handler id to pass to logging_disable()

    Example:
        handler_id = logging_enable()
        ScriptEngine(verbosity=2).execute_code("return 1")
        logging_disable(handler_id)
    """
    logger.enable("scriptlet")
    return logger.add(sink, format=logger_format, level=level, filter="scriptlet")


def logging_disable(handler_id: Optional[int] = None) -> None:
    """Silence scriptlet records again, removing the sink logging_enable() added"""
    if handler_id is not None:
        logger.remove(handler_id)
    logger.disable("scriptlet")


def state_connectToLogger(state: Any) -> None:
    """
    Connect a state object to the logging context.

    Call this at the start of each public entry point to make the state's
    verbosity setting available to LOG() calls throughout that context.

    Args:
        state: Any object with a `verbosity` attribute

    Example:
        def execute_script(self, script, model=None):
            state_connectToLogger(self)
            LOG("Rendering script...", level=2)
    """
    _program_state.set(state)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current state's verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=debug)
        **kwargs: Additional loguru metadata (e.g., exc_info=True for exceptions)

    Verbosity levels:
        1 = Normal output (default)
        2 = Verbose
        3 = Debug

    Example:
        LOG("Compiled ScriptClass_k3j9x0ab", level=2)
        LOG("Cache hit for 3f9a...", level=3)
    """
    state = _program_state.get()

    if state and hasattr(state, 'verbosity') and state.verbosity >= level:
        logger.opt(depth=1).debug(message, **kwargs)
