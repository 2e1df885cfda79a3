# turnkeeper/__init__.py
# Persistence harness for a turn-based external simulation program.
#
# One invocation is one turn: the previous state goes to the program on
# stdin, the program's stdout becomes the next state.
#
# ENTRY POINTS:
#   turnkeeper [ARGS...]
#   python -m turnkeeper.run_harness [ARGS...]
#   turnkeeper.run_harness.run_harness(args)   (in-process)
#
# CI GATE:
#   python -m turnkeeper.ci_gate

from .harness_version import HARNESS_VERSION, RECORD_FORMAT_VERSION
from .config import HarnessConfig, load_config
from .core import (
    ConfigError,
    HarnessError,
    InvocationResult,
    ProcessError,
    ProcessInvoker,
    RunMode,
    StateIOError,
    StateLockError,
    StateStore,
    classify,
)
from .data_models.turn_record import TurnOutcome, TurnPhase
from .harness import Harness

__all__ = [
    # Version constants
    "HARNESS_VERSION",
    "RECORD_FORMAT_VERSION",
    # Configuration
    "HarnessConfig",
    "load_config",
    # Components
    "StateStore",
    "RunMode",
    "classify",
    "ProcessInvoker",
    "InvocationResult",
    "Harness",
    "TurnOutcome",
    "TurnPhase",
    # Errors
    "HarnessError",
    "StateIOError",
    "StateLockError",
    "ProcessError",
    "ConfigError",
]
