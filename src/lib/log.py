"""
Centralized logging using Loguru with context-aware verbosity.

The converters and sanitizers are pure functions called from many places
(CLI batch runs, request handlers, tests). None of them takes a verbosity
argument; instead LOG() consults whichever ProgramState the caller connected
to the current context.

Usage:
    from inkbridge.lib.log import LOG, state_connectToLogger

    # At start of a pipeline stage or request:
    state_connectToLogger(state)

    # Anywhere below it:
    LOG("Converted 3 documents", level=1)
    LOG("Callout tokenized at line 12", level=2)
    LOG("Dropped attribute onerror on <img>", level=3)

Without a connected state nothing is emitted, so library callers that never
opt in stay silent. INKBRIDGE_DEBUG_MODE=true lifts this: every LOG()
call is emitted at trace verbosity, connected or not.
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

from ..config import appsettings

# Context variable to hold current ProgramState
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Connect a ProgramState (or anything with a ``verbosity`` attribute) to
    the logging context.

    Args:
        state: Object exposing an integer ``verbosity``
    """
    _program_state.set(state)


def state_disconnectFromLogger() -> None:
    """Detach the current context from any ProgramState (silences LOG)."""
    _program_state.set(None)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current state's verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=trace)
        **kwargs: Additional loguru metadata

    Verbosity levels:
        1 = Normal output (default)
        2 = Verbose (-v): one line per conversion step
        3 = Trace (-vv, or debug_mode): every dropped tag, attribute and URL
    """
    state = _program_state.get()
    verbosity = getattr(state, 'verbosity', 0) if state else 0
    if appsettings.debug_mode:
        verbosity = 3

    if verbosity >= level:
        # opt(depth=1) so the function/line columns show the caller, not LOG()
        logger.opt(depth=1).debug(message, **kwargs)
