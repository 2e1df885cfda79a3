# turnkeeper/data_models/turn_record.py
# TurnPhase, TurnOutcome and TurnRecord data classes.

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from turnkeeper.core.bootstrap_detector import RunMode
from turnkeeper.core.event_log import TurnEvent


class TurnPhase(str, Enum):
    """
    Phases of one turn.

    START -> SNAPSHOTTING -> CLASSIFIED -> INVOKING -> COMMITTING -> DONE
    ERRORED is reachable from SNAPSHOTTING, INVOKING and COMMITTING.
    """
    START        = "START"
    SNAPSHOTTING = "SNAPSHOTTING"
    CLASSIFIED   = "CLASSIFIED"
    INVOKING     = "INVOKING"
    COMMITTING   = "COMMITTING"
    DONE         = "DONE"
    ERRORED      = "ERRORED"


@dataclass(frozen=True)
class TurnOutcome:
    """
    Result of Harness.run_turn() for a committed turn.

    Fields:
      turn_id      -- Identifier of this turn (also used in record filenames).
      mode         -- FRESH or CONTINUING.
      phase        -- Always TurnPhase.DONE for a returned outcome.
      returncode   -- External program exit status (0).
      state_bytes  -- The state now persisted in the slot.
      committed    -- True once the slot holds state_bytes.
      events       -- The turn's hash-chained event log, oldest first.
    """
    turn_id:     str
    mode:        RunMode
    phase:       TurnPhase
    returncode:  int
    state_bytes: bytes
    committed:   bool
    events:      Tuple[TurnEvent, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TurnRecord:
    """
    Serializable audit record of one turn, successful or not.

    Written by RecordSerializer when runs_dir is configured. Never contains
    state bytes, only their digests inside the events.

    Fields:
      turn_id           -- Identifier of this turn.
      result            -- "PASS" or "FAIL".
      mode              -- RunMode value, or "" if classification was never reached.
      final_phase       -- TurnPhase value the turn ended in.
      args              -- Caller arguments, as forwarded.
      failure_type_id   -- Empty for a PASS record.
      child_returncode  -- External program exit status, if it ran.
      timestamp_iso     -- UTC ISO-8601 timestamp at record creation.
      events            -- Event dicts (TurnEvent.to_dict()).
    """
    turn_id:          str
    result:           str
    mode:             str
    final_phase:      str
    args:             List[str]
    failure_type_id:  str
    child_returncode: Optional[int]
    timestamp_iso:    str
    events:           List[dict]
