# turnkeeper/data_models/failure_record.py
# FailureRecord data class and failure type registry.

from dataclasses import dataclass
from typing import Optional


# ---------------------------------------------------------------------------
# FAILURE TYPE REGISTRY
# ---------------------------------------------------------------------------
# Exit code mapping:
#   Code N -- PROCESS_FAILURE mirrors the child's own exit status when it has
#             one; the value below is used only when it does not.
#   Code 2 -- CONFIG_FAILURE
#   Code 3 -- STATE_IO_FAILURE, STATE_LOCKED
#   Code 4 -- Spawn failure, timeout, internal harness errors

FAILURE_TYPES = {
    "PROCESS_FAILURE":        1,
    "CONFIG_FAILURE":         2,
    "STATE_IO_FAILURE":       3,
    "STATE_LOCKED":           3,
    "PROCESS_SPAWN_FAILURE":  4,
    "PROCESS_TIMEOUT":        4,
    "HARNESS_INTERNAL_ERROR": 4,
}


@dataclass
class FailureRecord:
    """
    Failure record produced by the FailureHandler on a failed turn.

    Written as JSON to runs_dir when one is configured; otherwise only the
    stderr summary is emitted.

    Fields:
      failure_type_id   -- Key from FAILURE_TYPES registry.
      exit_code         -- Exit code the harness terminates with.
      turn_id           -- Identifier of the failed turn.
      mode              -- "FRESH", "CONTINUING" or "" if classification
                           was never reached.
      child_returncode  -- Exit status of the external program, if any.
      state_preserved   -- True if the prior state was left untouched.
      detected_at_iso   -- UTC ISO-8601 timestamp of failure detection.
      harness_version   -- HARNESS_VERSION at time of failure.
      detail            -- Human-readable failure description.
    """
    failure_type_id:  str
    exit_code:        int
    turn_id:          str
    mode:             str
    child_returncode: Optional[int]
    state_preserved:  bool
    detected_at_iso:  str
    harness_version:  str
    detail:           str
