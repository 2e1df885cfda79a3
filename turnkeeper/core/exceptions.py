# =============================================================================
# turnkeeper -- EXCEPTION HIERARCHY
# File:   turnkeeper/core/exceptions.py
# =============================================================================
#
# SCOPE
# -----
# Defines every exception the harness raises on a failed turn.
# Exceptions are pure value objects: no logging, no I/O.
#
# EXCEPTION HIERARCHY
# -------------------
#   HarnessError(RuntimeError)     -- base; never raised directly
#     StateIOError(HarnessError)   -- state slot unreadable / unwritable
#     StateLockError(HarnessError) -- another turn holds the slot lock
#     ProcessError(HarnessError)   -- spawn failure, timeout, non-zero exit
#     ConfigError(HarnessError)    -- invalid or unreadable configuration
#
# MESSAGE CONTRACT
# ----------------
# Every message starts with the failure type id followed by a colon, e.g.
#   "STATE_IO_FAILURE: Failed to commit state to state: [Errno 28] ..."
# failure_handler.failure_type_of() relies on this prefix when it is
# given a plain RuntimeError instead of a HarnessError.
# =============================================================================

from __future__ import annotations

from typing import Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================

class HarnessError(RuntimeError):
    """
    Base class for all harness failures.

    Never raised directly. Use a concrete subclass.

    Attributes:
        failure_type_id:  Key into the FAILURE_TYPES registry.
        detail:           Human-readable description without the prefix.
    """

    failure_type_id: str = "HARNESS_INTERNAL_ERROR"

    def __init__(self, detail: str, failure_type_id: Optional[str] = None) -> None:
        if not isinstance(detail, str) or not detail:
            raise ValueError("HarnessError: detail must be a non-empty string")
        if failure_type_id is not None:
            self.failure_type_id = failure_type_id
        self.detail: str = detail
        super().__init__(f"{self.failure_type_id}: {detail}")

    def __repr__(self) -> str:
        return (
            self.__class__.__name__
            + "(failure_type_id=" + repr(self.failure_type_id)
            + ", detail=" + repr(self.detail)
            + ")"
        )


# =============================================================================
# CONCRETE EXCEPTIONS
# =============================================================================

class StateIOError(HarnessError):
    """
    Raised when the state slot cannot be read or written.

    A missing slot is not an error (it reads as empty state). This covers
    permission errors, a directory in place of the file, a full disk.
    """

    failure_type_id = "STATE_IO_FAILURE"


class StateLockError(HarnessError):
    """Raised when another turn already holds the lock on the state slot."""

    failure_type_id = "STATE_LOCKED"


class ProcessError(HarnessError):
    """
    Raised when the external program could not be started or did not
    terminate normally.

    Attributes:
        returncode:  Exit status of the child, or None if it never ran to
                     completion (missing executable, spawn failure, timeout).
        stdout:      Whatever the child wrote to stdout before failing.
                     Only consumed by the "overwrite" failure policy.
    """

    failure_type_id = "PROCESS_FAILURE"

    def __init__(
        self,
        detail:          str,
        failure_type_id: Optional[str] = None,
        returncode:      Optional[int] = None,
        stdout:          bytes = b"",
    ) -> None:
        super().__init__(detail, failure_type_id)
        self.returncode: Optional[int] = returncode
        self.stdout:     bytes = stdout


class ConfigError(HarnessError):
    """Raised when the harness configuration is invalid or unreadable."""

    failure_type_id = "CONFIG_FAILURE"


__all__ = [
    "HarnessError",
    "StateIOError",
    "StateLockError",
    "ProcessError",
    "ConfigError",
]
