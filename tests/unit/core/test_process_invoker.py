# =============================================================================
# tests/unit/core/test_process_invoker.py
# =============================================================================
#
# Coverage:
#   run_fresh: no stdin, stdout captured, args appended only when configured
#   run_continuing: prior state on stdin, args forwarded verbatim and in order
#   echo of captured stdout per mode
#   ProcessError on non-zero exit, missing executable, timeout
# =============================================================================

import sys

import pytest

from turnkeeper.core.bootstrap_detector import RunMode
from turnkeeper.core.exceptions import ProcessError
from turnkeeper.core.process_invoker import InvocationResult, ProcessInvoker


class TestConstruction:

    def test_empty_bootstrap_command_rejected(self) -> None:
        with pytest.raises(ValueError):
            ProcessInvoker(bootstrap_command=[], continue_command=["sim"])

    def test_empty_continue_command_rejected(self) -> None:
        with pytest.raises(ValueError):
            ProcessInvoker(bootstrap_command=["sim"], continue_command=[])


class TestRunFresh:

    def test_captures_stdout(self, make_invoker) -> None:
        result = make_invoker().run_fresh(["look"])
        assert isinstance(result, InvocationResult)
        assert result.stdout == b"WORLD#0"
        assert result.mode is RunMode.FRESH
        assert result.returncode == 0
        assert result.duration_seconds >= 0.0

    def test_args_not_forwarded_by_default(self, make_invoker, simulation) -> None:
        make_invoker().run_fresh(["look"])
        assert simulation.observed()[-1]["argv"] == ["--bootstrap"]

    def test_args_forwarded_when_configured(self, make_invoker, simulation) -> None:
        make_invoker(forward_args_on_bootstrap=True).run_fresh(["look", "around"])
        assert simulation.observed()[-1]["argv"] == ["--bootstrap", "look", "around"]

    def test_argv_recorded_on_result(self, make_invoker, simulation) -> None:
        result = make_invoker().run_fresh([])
        assert result.argv == tuple(simulation.bootstrap_command)

    def test_echoes_bootstrap_output_by_default(self, make_invoker, echo_stream) -> None:
        make_invoker().run_fresh([])
        assert echo_stream.getvalue() == b"WORLD#0"

    def test_echo_can_be_disabled(self, make_invoker, echo_stream) -> None:
        make_invoker(echo_bootstrap_output=False).run_fresh([])
        assert echo_stream.getvalue() == b""

    def test_bootstrap_failure_raises(
        self, make_invoker, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SIM_BOOTSTRAP_STATUS", "9")
        with pytest.raises(ProcessError) as exc_info:
            make_invoker().run_fresh([])
        assert exc_info.value.returncode == 9
        assert exc_info.value.stdout == b"WORLD#0"


class TestRunContinuing:

    def test_prior_state_on_stdin(self, make_invoker, simulation) -> None:
        make_invoker().run_continuing(b"WORLD#0", ["move", "north"])
        assert simulation.observed()[-1]["stdin"] == "WORLD#0"

    def test_args_forwarded_in_order(self, make_invoker, simulation) -> None:
        make_invoker().run_continuing(b"WORLD#0", ["move", "north"])
        assert simulation.observed()[-1]["argv"] == ["move", "north"]

    def test_args_with_spaces_and_dashes_untouched(self, make_invoker, simulation) -> None:
        args = ["--repeat", "3", "say hello", "-t", ""]
        with pytest.raises(ProcessError):
            # The simulation cannot parse these as a move; only argv matters here.
            make_invoker().run_continuing(b"not-a-world", args)
        assert simulation.observed()[-1]["argv"] == args

    def test_captures_next_state(self, make_invoker) -> None:
        result = make_invoker().run_continuing(b"WORLD#0", ["move", "north"])
        assert result.stdout == b"WORLD#1"
        assert result.mode is RunMode.CONTINUING
        assert result.argv[-2:] == ("move", "north")

    def test_no_echo_by_default(self, make_invoker, echo_stream) -> None:
        make_invoker().run_continuing(b"WORLD#0", [])
        assert echo_stream.getvalue() == b""

    def test_echo_when_enabled(self, make_invoker, echo_stream) -> None:
        make_invoker(echo_continuing_output=True).run_continuing(b"WORLD#0", [])
        assert echo_stream.getvalue() == b"WORLD#1"


class TestFailures:

    def test_non_zero_exit_raises_process_error(self, make_invoker) -> None:
        with pytest.raises(ProcessError) as exc_info:
            make_invoker().run_continuing(b"WORLD#1", ["crash"])
        exc = exc_info.value
        assert exc.failure_type_id == "PROCESS_FAILURE"
        assert exc.returncode == 3
        assert exc.stdout == b""

    def test_partial_output_kept_on_error(self, make_invoker) -> None:
        with pytest.raises(ProcessError) as exc_info:
            make_invoker().run_continuing(b"WORLD#1", ["partial"])
        assert exc_info.value.returncode == 5
        assert exc_info.value.stdout == b"PARTIAL"

    def test_missing_executable_is_spawn_failure(self, tmp_path) -> None:
        missing = str(tmp_path / "no-such-simulation")
        invoker = ProcessInvoker(bootstrap_command=[missing], continue_command=[missing])
        with pytest.raises(ProcessError) as exc_info:
            invoker.run_continuing(b"WORLD#0", [])
        assert exc_info.value.failure_type_id == "PROCESS_SPAWN_FAILURE"
        assert exc_info.value.returncode is None

    def test_timeout(self, make_invoker) -> None:
        with pytest.raises(ProcessError) as exc_info:
            make_invoker(timeout_seconds=0.5).run_continuing(b"WORLD#0", ["sleep"])
        assert exc_info.value.failure_type_id == "PROCESS_TIMEOUT"
        assert exc_info.value.returncode is None
