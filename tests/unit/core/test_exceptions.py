# =============================================================================
# tests/unit/core/test_exceptions.py
# =============================================================================
#
# Coverage:
#   hierarchy: every harness error is a HarnessError and a RuntimeError
#   message contract: "FAILURE_TYPE_ID: detail"
#   ProcessError carries returncode and partial stdout
# =============================================================================

import pytest

from turnkeeper.core.exceptions import (
    ConfigError,
    HarnessError,
    ProcessError,
    StateIOError,
    StateLockError,
)


class TestHierarchy:

    @pytest.mark.parametrize("cls", [StateIOError, StateLockError, ProcessError, ConfigError])
    def test_subclass_of_harness_error(self, cls) -> None:
        assert issubclass(cls, HarnessError)
        assert issubclass(cls, RuntimeError)


class TestMessageContract:

    @pytest.mark.parametrize(
        "cls, failure_type_id",
        [
            (StateIOError, "STATE_IO_FAILURE"),
            (StateLockError, "STATE_LOCKED"),
            (ProcessError, "PROCESS_FAILURE"),
            (ConfigError, "CONFIG_FAILURE"),
        ],
    )
    def test_prefix(self, cls, failure_type_id: str) -> None:
        exc = cls("something went wrong")
        assert exc.failure_type_id == failure_type_id
        assert str(exc) == f"{failure_type_id}: something went wrong"
        assert exc.detail == "something went wrong"

    def test_failure_type_override(self) -> None:
        exc = ProcessError("too slow", failure_type_id="PROCESS_TIMEOUT")
        assert str(exc).startswith("PROCESS_TIMEOUT: ")
        # The class default is untouched.
        assert ProcessError.failure_type_id == "PROCESS_FAILURE"

    def test_empty_detail_rejected(self) -> None:
        with pytest.raises(ValueError):
            StateIOError("")

    def test_repr(self) -> None:
        assert repr(StateIOError("disk full")) == (
            "StateIOError(failure_type_id='STATE_IO_FAILURE', detail='disk full')"
        )


class TestProcessError:

    def test_defaults(self) -> None:
        exc = ProcessError("could not start")
        assert exc.returncode is None
        assert exc.stdout == b""

    def test_carries_returncode_and_stdout(self) -> None:
        exc = ProcessError("exited 5", returncode=5, stdout=b"PARTIAL")
        assert exc.returncode == 5
        assert exc.stdout == b"PARTIAL"
