# turnkeeper/harness.py
# Harness -- composes StateStore, classify() and ProcessInvoker into one turn.
#
# Turn sequence:
#   SNAPSHOTTING  store.read_current()
#   CLASSIFIED    classify(snapshot)
#   INVOKING      invoker.run_fresh(args) | invoker.run_continuing(snapshot, args)
#   COMMITTING    store.commit(result.stdout)
#   DONE
#
# On ProcessError the turn ends ERRORED without a commit ("preserve"), or
# after committing the failed run's partial stdout ("overwrite").
# On StateIOError during commit the turn ends ERRORED.
# Every error propagates to the caller. Nothing is retried.

import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from turnkeeper.core import event_log
from turnkeeper.core.bootstrap_detector import RunMode, classify
from turnkeeper.core.event_log import TurnEvent, TurnEventLog, state_digest
from turnkeeper.core.exceptions import HarnessError, ProcessError
from turnkeeper.core.process_invoker import InvocationResult, ProcessInvoker
from turnkeeper.core.state_store import StateStore
from turnkeeper.config import FAILURE_POLICIES
from turnkeeper.data_models.turn_record import TurnOutcome, TurnPhase


def new_turn_id() -> str:
    return (
        "TURN-"
        + datetime.now(timezone.utc).strftime("%Y%m%d")
        + "-"
        + str(uuid.uuid4())[:8].upper()
    )


class Harness:
    """
    Runs one turn of the external simulation against one state slot.

    The state slot and the program launcher are passed in; the harness does
    no filesystem or process work of its own. Sequential turns are a
    precondition; use_lock=True makes an overlapping turn fail fast with
    StateLockError instead of racing.

    After run_turn() returns or raises, phase, mode, events and
    state_preserved describe how the turn ended.
    """

    def __init__(
        self,
        store:          StateStore,
        invoker:        ProcessInvoker,
        failure_policy: str = "preserve",
        use_lock:       bool = False,
        clock:          Optional[Callable[[], datetime]] = None,
    ):
        if failure_policy not in FAILURE_POLICIES:
            raise ValueError(
                f"failure_policy must be one of {FAILURE_POLICIES}; got {failure_policy!r}"
            )
        self._store          = store
        self._invoker        = invoker
        self._failure_policy = failure_policy
        self._use_lock       = use_lock
        self._clock          = clock

        self.turn_id:         str = ""
        self.phase:           TurnPhase = TurnPhase.START
        self.mode:            Optional[RunMode] = None
        self.state_preserved: bool = True
        self._log:            TurnEventLog = TurnEventLog(clock)

    @property
    def events(self) -> Tuple[TurnEvent, ...]:
        return tuple(self._log.events())

    def run_turn(self, args: Sequence[str], turn_id: Optional[str] = None) -> TurnOutcome:
        """
        Execute one turn with args forwarded to the external program.

        Returns a TurnOutcome once the new state is committed.
        Raises StateIOError, StateLockError or ProcessError on failure.
        """
        self.turn_id         = turn_id or new_turn_id()
        args = list(args)
        for arg in args:
            if not isinstance(arg, str):
                raise TypeError(f"arguments must be strings; got {type(arg).__name__}")

        self.phase           = TurnPhase.START
        self.mode            = None
        self.state_preserved = True
        self._log            = TurnEventLog(self._clock)

        if self._use_lock:
            with self._store.locked():
                return self._run(args)
        return self._run(args)

    def _run(self, args: List[str]) -> TurnOutcome:
        self.phase = TurnPhase.SNAPSHOTTING
        try:
            snapshot = self._store.read_current()
        except HarnessError as exc:
            self._fail(exc)
            raise
        self._log.log_event(event_log.SNAPSHOT_TAKEN, state_digest(snapshot))

        self.mode  = classify(snapshot)
        self.phase = TurnPhase.CLASSIFIED
        self._log.log_event(event_log.CLASSIFIED, {"mode": self.mode.value})

        self.phase = TurnPhase.INVOKING
        self._log.log_event(
            event_log.PROCESS_STARTED,
            {"mode": self.mode.value, "argc": len(args)},
        )
        try:
            result = self._invoke(snapshot, args)
        except ProcessError as exc:
            self._log.log_event(
                event_log.PROCESS_FINISHED,
                {"returncode": exc.returncode, **state_digest(exc.stdout)},
            )
            if self._failure_policy == "overwrite":
                self._commit(exc.stdout)
            self._fail(exc)
            raise

        self._log.log_event(
            event_log.PROCESS_FINISHED,
            {
                "returncode":       result.returncode,
                "duration_seconds": round(result.duration_seconds, 6),
                **state_digest(result.stdout),
            },
        )
        self._commit(result.stdout)

        self.phase = TurnPhase.DONE
        return TurnOutcome(
            turn_id=self.turn_id,
            mode=self.mode,
            phase=self.phase,
            returncode=result.returncode,
            state_bytes=result.stdout,
            committed=True,
            events=self.events,
        )

    def _invoke(self, snapshot: bytes, args: List[str]) -> InvocationResult:
        if self.mode is RunMode.FRESH:
            return self._invoker.run_fresh(args)
        return self._invoker.run_continuing(snapshot, args)

    def _commit(self, new_state: bytes) -> None:
        self.phase = TurnPhase.COMMITTING
        try:
            self._store.commit(new_state)
        except HarnessError as exc:
            self._fail(exc)
            raise
        self.state_preserved = False
        self._log.log_event(event_log.STATE_COMMITTED, state_digest(new_state))

    def _fail(self, exc: HarnessError) -> None:
        # A commit attempt that failed still left the previous state in place.
        self.phase = TurnPhase.ERRORED
        self._log.log_event(
            event_log.TURN_FAILED,
            {
                "failure_type_id": exc.failure_type_id,
                "state_preserved": self.state_preserved,
            },
        )
