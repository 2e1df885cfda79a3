# turnkeeper/core/event_log.py
# Turn Event Log
#
# Scope: Event-sourced, hash-chained record of one turn's phase transitions.
# Zero tolerance for lost events. No file IO. No global mutable state.
# Timestamps come from the injected clock. Hashes are deterministic.
#
# Canonical import:
#   from turnkeeper.core.event_log import TurnEventLog, TurnEvent
#
# State bytes never enter an event payload. Callers log lengths and digests
# via state_digest().

# ===========================================================================
# SECTION 1 -- STDLIB IMPORTS
# ===========================================================================

import hashlib
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

# ===========================================================================
# SECTION 2 -- CONSTANTS
# ===========================================================================

# Event type vocabulary. log_event() rejects anything else.
SNAPSHOT_TAKEN: str = "SNAPSHOT_TAKEN"
CLASSIFIED: str = "CLASSIFIED"
PROCESS_STARTED: str = "PROCESS_STARTED"
PROCESS_FINISHED: str = "PROCESS_FINISHED"
STATE_COMMITTED: str = "STATE_COMMITTED"
TURN_FAILED: str = "TURN_FAILED"

EVENT_TYPES = (
    SNAPSHOT_TAKEN,
    CLASSIFIED,
    PROCESS_STARTED,
    PROCESS_FINISHED,
    STATE_COMMITTED,
    TURN_FAILED,
)

_NAN_SENTINEL: str = "NaN_DETECTED"
_INF_SENTINEL: str = "Inf_DETECTED"

_HASH_SEP: str = "|"

# Hash of the (nonexistent) event before the first one.
GENESIS_HASH: str = "0" * 64

# ===========================================================================
# SECTION 3 -- DATACLASSES
# ===========================================================================

@dataclass(frozen=True)
class TurnEvent:
    """
    Immutable record of a single turn event.

    Fields
    ------
    id        : "EVT-{counter:06d}", monotonic within one log.
    type      : One of EVENT_TYPES.
    timestamp : Clock reading at the time the event was logged.
    data      : Sanitized key-value payload.
    prev_hash : Hash of the preceding event, GENESIS_HASH for the first.
    hash      : SHA-256 hex digest over (prev_hash, id, type, timestamp, data).
    """
    id: str
    type: str
    timestamp: datetime
    data: Dict[str, Any]
    prev_hash: str
    hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "data": dict(self.data),
            "prev_hash": self.prev_hash,
            "hash": self.hash,
        }


# ===========================================================================
# SECTION 4 -- INTERNAL HELPERS
# ===========================================================================

def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _sanitize_numeric(value: Any) -> Any:
    """Replace float NaN or Inf with a sentinel string. Never raises."""
    if isinstance(value, float):
        if math.isnan(value):
            return _NAN_SENTINEL
        if math.isinf(value):
            return _INF_SENTINEL
    return value


def _sanitize_data(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _sanitize_numeric(v) for k, v in data.items()}


def _compute_hash(
    prev_hash: str,
    event_id: str,
    event_type: str,
    timestamp: datetime,
    data: Dict[str, Any],
) -> str:
    """
    Deterministic SHA-256 hex digest for an event.

    Preimage: prev_hash, event_id, event_type, timestamp.isoformat() and
    repr(sorted(data.items())), joined by _HASH_SEP. Sorting makes the digest
    independent of dict insertion order.
    """
    preimage: str = _HASH_SEP.join(
        [
            prev_hash,
            event_id,
            event_type,
            timestamp.isoformat(),
            repr(sorted(data.items())),
        ]
    )
    return hashlib.sha256(preimage.encode("utf-8", errors="replace")).hexdigest()


def state_digest(state: bytes) -> Dict[str, Any]:
    """Return the loggable summary of a state: its length and SHA-256."""
    return {
        "length": len(state),
        "sha256": hashlib.sha256(state).hexdigest(),
    }


# ===========================================================================
# SECTION 5 -- TurnEventLog
# ===========================================================================

class TurnEventLog:
    """
    Hash-chained event log for one turn.

    Each event's hash covers the previous event's hash, so altering,
    removing or reordering any stored event breaks verify_chain().

    log_event() raises EventLogError on any invalid input instead of
    silently discarding the event.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._store: List[TurnEvent] = []
        self._counter: int = 0
        self._clock: Callable[[], datetime] = clock if clock is not None else _utc_now

    def log_event(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> TurnEvent:
        """
        Append one event and return it.

        Raises
        ------
        EventLogError : If event_type is not in EVENT_TYPES, data is not a
                        dict, or the clock returns something other than a
                        datetime.
        """
        if event_type not in EVENT_TYPES:
            raise EventLogError("unknown event_type: {!r}".format(event_type))
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise EventLogError(
                "data must be a dict; got: {}".format(type(data).__name__)
            )
        timestamp = self._clock()
        if not isinstance(timestamp, datetime):
            raise EventLogError(
                "clock must return a datetime; got: {}".format(type(timestamp).__name__)
            )

        self._counter += 1
        event_id: str = "EVT-{:06d}".format(self._counter)
        prev_hash: str = self._store[-1].hash if self._store else GENESIS_HASH
        sanitized: Dict[str, Any] = _sanitize_data(data)

        event = TurnEvent(
            id=event_id,
            type=event_type,
            timestamp=timestamp,
            data=sanitized,
            prev_hash=prev_hash,
            hash=_compute_hash(prev_hash, event_id, event_type, timestamp, sanitized),
        )
        self._store.append(event)
        return event

    def events(self, event_type: Optional[str] = None) -> List[TurnEvent]:
        """Return stored events in insertion order, optionally by type."""
        if event_type is None:
            return list(self._store)
        return [e for e in self._store if e.type == event_type]

    def __iter__(self) -> Iterator[TurnEvent]:
        return iter(list(self._store))

    def __len__(self) -> int:
        return len(self._store)

    def verify_chain(self) -> bool:
        """Recompute every hash and link. True if the chain is intact."""
        prev_hash = GENESIS_HASH
        for event in self._store:
            if event.prev_hash != prev_hash:
                return False
            expected = _compute_hash(
                event.prev_hash, event.id, event.type, event.timestamp, event.data
            )
            if event.hash != expected:
                return False
            prev_hash = event.hash
        return True


# ===========================================================================
# SECTION 6 -- EXCEPTIONS
# ===========================================================================

class EventLogError(Exception):
    """
    Raised by TurnEventLog when an event cannot be recorded.

    Never silently swallowed. Every call site either handles it or lets it
    propagate.
    """
