"""
Centralized logging using Loguru with context-aware verbosity.

LOG() respects the verbosity of the ProgramState connected to the current
context, so library code (stripper, compiler, store) can log without any
state being passed to it. With no state connected, nothing is printed;
library use stays quiet unless a caller opts in.

Usage:
    from sampledown.lib.log import LOG, state_connectToLogger

    # At the start of a pipeline stage:
    state_connectToLogger(state)

    # Anywhere below it:
    LOG("Rendered guide.md", level=1)
    LOG("Sample compiler ready", level=2)
    LOG("Collected 42 taggings", level=3)
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

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
    Connect a ProgramState (or anything with a verbosity) to the logging
    context.

    Args:
        state: Object with an integer verbosity attribute

    Example:
        def pages_render(inputstate: ProgramState) -> ProgramState:
            state = inputstate.copy()
            state_connectToLogger(state)
            LOG("Rendering pages...", level=1)
    """
    _program_state.set(state)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current state's verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=debug)
        **kwargs: Additional loguru metadata

    Verbosity levels:
        1 = Normal output (default), including ignored directives and
            failed samples
        2 = Verbose (-v): per-document and per-compiler summaries
        3 = Debug (-vv): per-sample stage traces
    """
    state = _program_state.get()

    if state and hasattr(state, 'verbosity') and state.verbosity >= level:
        logger.opt(depth=1).debug(message, **kwargs)
