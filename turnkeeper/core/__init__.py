# turnkeeper/core/__init__.py
# State slot, run classification, program launcher and turn event log.

from turnkeeper.core.exceptions import (
    HarnessError,
    StateIOError,
    StateLockError,
    ProcessError,
    ConfigError,
)
from turnkeeper.core.state_store import StateStore
from turnkeeper.core.bootstrap_detector import RunMode, classify
from turnkeeper.core.process_invoker import ProcessInvoker, InvocationResult
from turnkeeper.core.event_log import TurnEventLog, TurnEvent, EventLogError
