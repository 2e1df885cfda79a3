# turnkeeper/failure_handler.py
# FailureHandler -- turns a failed turn into an exit code and a report.
#
# On any failure:
#   1. Construct FailureRecord.
#   2. Write FailureRecord JSON to runs_dir, if one is configured.
#   3. Print failure summary to stderr. Stdout stays reserved for the
#      external program's echoed output.
#   4. Return the mapped exit code.
#
# PROCESS_FAILURE mirrors the child's exit status. A child killed by signal
# N maps to 128 + N, as a shell would report it.
# If writing the record itself fails: write partial info to stderr, exit 4.

import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

from turnkeeper.core.bootstrap_detector import RunMode
from turnkeeper.core.exceptions import HarnessError, ProcessError
from turnkeeper.data_models.failure_record import FAILURE_TYPES, FailureRecord
from turnkeeper.harness_version import HARNESS_VERSION
from turnkeeper.storage.record_serializer import RecordSerializer

INTERNAL_ERROR_EXIT_CODE: int = FAILURE_TYPES["HARNESS_INTERNAL_ERROR"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def exit_code_for(exc: BaseException) -> int:
    """Map an exception to the harness exit code."""
    if isinstance(exc, ProcessError) and exc.returncode is not None:
        if exc.returncode > 0:
            return exc.returncode
        if exc.returncode < 0:
            return 128 - exc.returncode
    return FAILURE_TYPES.get(failure_type_of(exc), INTERNAL_ERROR_EXIT_CODE)


def failure_type_of(exc: BaseException) -> str:
    """
    Failure type id of exc.

    HarnessError carries it as an attribute. A plain RuntimeError is parsed
    by the FAILURE_TYPE_ID: detail prefix convention. Anything else is
    HARNESS_INTERNAL_ERROR.
    """
    if isinstance(exc, HarnessError):
        return exc.failure_type_id
    if isinstance(exc, RuntimeError):
        msg = str(exc)
        for known_type in FAILURE_TYPES:
            if msg.startswith(known_type + ":"):
                return known_type
    return "HARNESS_INTERNAL_ERROR"


class FailureHandler:
    """Reports a failed turn. See module header for the policy."""

    def __init__(
        self,
        turn_id:    str,
        serializer: Optional[RecordSerializer] = None,
        stream:     Optional[TextIO] = None,
    ):
        self._turn_id    = turn_id
        self._serializer = serializer
        self._stream     = stream

    def report(
        self,
        exc:             BaseException,
        mode:            Optional[RunMode] = None,
        state_preserved: bool = True,
    ) -> int:
        """Record and print the failure. Return the exit code."""
        stream = self._stream if self._stream is not None else sys.stderr
        failure_type_id = failure_type_of(exc)
        exit_code = exit_code_for(exc)

        record = FailureRecord(
            failure_type_id=failure_type_id,
            exit_code=exit_code,
            turn_id=self._turn_id,
            mode=mode.value if mode is not None else "",
            child_returncode=exc.returncode if isinstance(exc, ProcessError) else None,
            state_preserved=state_preserved,
            detected_at_iso=_now_iso(),
            harness_version=HARNESS_VERSION,
            detail=str(exc) or exc.__class__.__name__,
        )

        record_path = None
        if self._serializer is not None:
            try:
                record_path = self._serializer.write_failure(record)
            except OSError as write_exc:
                stream.write(
                    f"HARNESS_INTERNAL_ERROR: FailureHandler failed to write record: {write_exc}\n"
                    f"Original failure: {failure_type_id} -- {record.detail}\n"
                )
                stream.flush()
                return INTERNAL_ERROR_EXIT_CODE

        stream.write(
            f"TURN RESULT: FAIL\n"
            f"Turn ID:        {self._turn_id}\n"
            f"Failure type:   {failure_type_id}\n"
            f"Exit code:      {exit_code}\n"
            f"State:          {'preserved' if state_preserved else 'overwritten'}\n"
            f"Detail:         {record.detail[:200]}\n"
        )
        if record_path is not None:
            stream.write(f"Record written: {record_path}\n")
        stream.flush()
        return exit_code
