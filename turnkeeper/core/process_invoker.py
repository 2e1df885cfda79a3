# turnkeeper/core/process_invoker.py
# ProcessInvoker -- runs the external simulation program for one turn.
#
# Wiring:
#   FRESH       stdin=DEVNULL, argv = bootstrap_command [+ args if configured]
#   CONTINUING  stdin=prior state, argv = continue_command + args
#   Both        stdout captured in full as the resulting state,
#               stderr inherited so the program's diagnostics reach the caller.
#
# Single child per call, awaited synchronously. No retry.

import subprocess
import sys
import time
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Sequence, Tuple

from turnkeeper.core.bootstrap_detector import RunMode
from turnkeeper.core.exceptions import ProcessError


@dataclass(frozen=True)
class InvocationResult:
    """
    Outcome of one successful external program run.

    Fields:
      mode              -- RunMode the program was launched in.
      argv              -- Full argument vector used, command included.
      stdout            -- Everything the program wrote to stdout.
      returncode        -- Exit status; always 0 for a returned result.
      duration_seconds  -- Wall-clock time from spawn to exit.
    """
    mode:             RunMode
    argv:             Tuple[str, ...]
    stdout:           bytes
    returncode:       int
    duration_seconds: float


def _as_bytes(value) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class ProcessInvoker:
    """
    Launches the external program in bootstrap or continuation mode.

    Commands are argument lists, never shell strings. Caller arguments are
    appended verbatim and in order.
    """

    def __init__(
        self,
        bootstrap_command:         Sequence[str],
        continue_command:          Sequence[str],
        forward_args_on_bootstrap: bool = False,
        echo_bootstrap_output:     bool = True,
        echo_continuing_output:    bool = False,
        timeout_seconds:           Optional[float] = None,
        cwd:                       Optional[str] = None,
        echo_stream:               Optional[BinaryIO] = None,
    ):
        if not bootstrap_command:
            raise ValueError("bootstrap_command must not be empty")
        if not continue_command:
            raise ValueError("continue_command must not be empty")
        self._bootstrap_command         = list(bootstrap_command)
        self._continue_command          = list(continue_command)
        self._forward_args_on_bootstrap = forward_args_on_bootstrap
        self._echo = {
            RunMode.FRESH:      echo_bootstrap_output,
            RunMode.CONTINUING: echo_continuing_output,
        }
        self._timeout_seconds = timeout_seconds
        self._cwd             = cwd
        self._echo_stream     = echo_stream

    def run_fresh(self, args: Sequence[str]) -> InvocationResult:
        """Run the bootstrap entry point with no stdin. Capture stdout."""
        argv = list(self._bootstrap_command)
        if self._forward_args_on_bootstrap:
            argv.extend(args)
        return self._run(RunMode.FRESH, argv, stdin_bytes=None)

    def run_continuing(self, prior_state: bytes, args: Sequence[str]) -> InvocationResult:
        """Run the continuation executable with prior_state on stdin."""
        argv = list(self._continue_command) + list(args)
        return self._run(RunMode.CONTINUING, argv, stdin_bytes=prior_state)

    def _run(
        self,
        mode:        RunMode,
        argv:        List[str],
        stdin_bytes: Optional[bytes],
    ) -> InvocationResult:
        kwargs = {
            "stdout":  subprocess.PIPE,
            "stderr":  None,
            "cwd":     self._cwd,
            "timeout": self._timeout_seconds,
        }
        if stdin_bytes is None:
            kwargs["stdin"] = subprocess.DEVNULL
        else:
            kwargs["input"] = stdin_bytes

        started = time.monotonic()
        try:
            proc = subprocess.run(argv, **kwargs)
        except subprocess.TimeoutExpired as exc:
            raise ProcessError(
                f"{argv[0]} did not finish within {self._timeout_seconds}s "
                f"({mode.value} mode).",
                failure_type_id="PROCESS_TIMEOUT",
                stdout=_as_bytes(exc.stdout),
            ) from exc
        except OSError as exc:
            raise ProcessError(
                f"Could not start {argv[0]} ({mode.value} mode): {exc}",
                failure_type_id="PROCESS_SPAWN_FAILURE",
            ) from exc
        duration = time.monotonic() - started

        stdout = _as_bytes(proc.stdout)
        if self._echo[mode]:
            self._write_echo(stdout)

        if proc.returncode != 0:
            raise ProcessError(
                f"{argv[0]} exited with status {proc.returncode} "
                f"({mode.value} mode).",
                returncode=proc.returncode,
                stdout=stdout,
            )

        return InvocationResult(
            mode=mode,
            argv=tuple(argv),
            stdout=stdout,
            returncode=proc.returncode,
            duration_seconds=duration,
        )

    def _write_echo(self, data: bytes) -> None:
        stream = self._echo_stream
        if stream is None:
            stream = getattr(sys.stdout, "buffer", None)
        if stream is None:
            sys.stdout.write(data.decode("utf-8", errors="replace"))
            sys.stdout.flush()
            return
        stream.write(data)
        stream.flush()
