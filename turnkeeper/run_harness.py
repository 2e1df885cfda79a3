# turnkeeper/run_harness.py
# Turn harness -- Entry Point.
#
# Standard invocation (one turn):
#   python -m turnkeeper.run_harness [ARGS...]
#   turnkeeper [ARGS...]
#
# No flags are interpreted here. Every argument is forwarded verbatim to the
# external program. Configuration comes from turnkeeper.json and the
# TURNKEEPER_* environment variables (see turnkeeper/config.py).
#
# EXIT CODES:
#   0  -- Turn committed.
#   N  -- External program exited with status N. Prior state kept.
#   2  -- CONFIG_FAILURE.
#   3  -- STATE_IO_FAILURE or STATE_LOCKED.
#   4  -- Spawn failure, timeout, or internal harness error.
#
# Single-threaded. One child process per invocation, awaited synchronously.

import sys
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Sequence

from turnkeeper.config import HarnessConfig, load_config
from turnkeeper.core.exceptions import ConfigError
from turnkeeper.core.process_invoker import ProcessInvoker
from turnkeeper.core.state_store import StateStore
from turnkeeper.data_models.turn_record import TurnRecord
from turnkeeper.failure_handler import FailureHandler, failure_type_of
from turnkeeper.harness import Harness, new_turn_id
from turnkeeper.storage.record_serializer import RecordSerializer


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_harness(config: HarnessConfig) -> Harness:
    """Wire a Harness from its configuration."""
    store = StateStore(config.state_path)
    invoker = ProcessInvoker(
        bootstrap_command=config.bootstrap_command,
        continue_command=config.continue_command,
        forward_args_on_bootstrap=config.forward_args_on_bootstrap,
        echo_bootstrap_output=config.echo_bootstrap_output,
        echo_continuing_output=config.echo_continuing_output,
        timeout_seconds=config.timeout_seconds,
    )
    return Harness(
        store=store,
        invoker=invoker,
        failure_policy=config.failure_policy,
        use_lock=config.use_lock,
    )


def _turn_record(harness: Harness, args: List[str], result: str, failure_type_id: str,
                 child_returncode: Optional[int]) -> TurnRecord:
    return TurnRecord(
        turn_id=harness.turn_id,
        result=result,
        mode=harness.mode.value if harness.mode is not None else "",
        final_phase=harness.phase.value,
        args=list(args),
        failure_type_id=failure_type_id,
        child_returncode=child_returncode,
        timestamp_iso=_now_iso(),
        events=[e.to_dict() for e in harness.events],
    )


def run_harness(
    args:    Sequence[str],
    config:  Optional[HarnessConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """
    Programmatic entry point. Runs one turn in-process.

    Args:
        args:     Arguments forwarded to the external program.
        config:   Effective configuration. Loaded via load_config() if None.
        environ:  Environment mapping for load_config(). os.environ if None.

    Returns:
        int: Exit code, as documented in the module header.
    """
    args = list(args)
    turn_id = new_turn_id()

    if config is None:
        try:
            config = load_config(environ=environ)
        except ConfigError as exc:
            return FailureHandler(turn_id).report(exc)

    serializer = RecordSerializer(config.runs_dir) if config.runs_dir else None
    fh = FailureHandler(turn_id, serializer=serializer)
    harness = build_harness(config)

    try:
        outcome = harness.run_turn(args, turn_id=turn_id)
    except Exception as exc:  # noqa: BLE001 -- reported and mapped to an exit code
        if serializer is not None:
            try:
                serializer.write_turn(
                    _turn_record(
                        harness, args, "FAIL",
                        failure_type_id=failure_type_of(exc),
                        child_returncode=getattr(exc, "returncode", None),
                    )
                )
            except OSError as write_exc:
                sys.stderr.write(f"HARNESS_INTERNAL_ERROR: Failed to write turn record: {write_exc}\n")
        return fh.report(exc, mode=harness.mode, state_preserved=harness.state_preserved)

    if serializer is not None:
        try:
            serializer.write_turn(
                _turn_record(harness, args, "PASS", failure_type_id="",
                             child_returncode=outcome.returncode)
            )
        except OSError as exc:
            # The state is already committed; only the audit record is missing.
            return fh.report(
                RuntimeError(f"HARNESS_INTERNAL_ERROR: Failed to write turn record: {exc}"),
                mode=outcome.mode,
                state_preserved=False,
            )

    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point. Exits with the turn's exit code."""
    if argv is None:
        argv = sys.argv[1:]
    sys.exit(run_harness(argv))


if __name__ == "__main__":
    main()
