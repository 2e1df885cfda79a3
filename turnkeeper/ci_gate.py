#!/usr/bin/env python3
# =============================================================================
# turnkeeper -- CI SMOKE GATE
# File:   turnkeeper/ci_gate.py
# =============================================================================
#
# PURPOSE
# -------
# End-to-end check of the state handoff. Runs four turns of a throwaway
# Python simulation through `python -m turnkeeper.run_harness` in a
# temporary directory:
#   A. no state file, args ["look"]          -> state "WORLD#0"
#   B. state "WORLD#0", args ["move","north"] -> state "WORLD#1"
#   C. state "WORLD#1", args ["crash"]        -> child fails, state unchanged
#   D. state "WORLD#1", slot lock held here   -> exit 3, program never runs
#
# CI runs the unit suite, then this gate:
#   pytest --cov
#   python -m turnkeeper.ci_gate
# The coverage floor lives in pyproject.toml [tool.coverage.report].
# Scenario D needs fcntl, so the gate is POSIX only.
#
# Exit codes:
#   0 -- All scenarios pass.
#   1 -- Any scenario fails or an exception occurs.
# =============================================================================

from __future__ import annotations

import json
import os
import pathlib
import subprocess
import sys
import tempfile
import textwrap

from turnkeeper.core.state_store import StateStore

_PACKAGE_ROOT = pathlib.Path(__file__).resolve().parent.parent

_SIMULATION = textwrap.dedent(
    """
    import os
    import sys

    if "SIM_MARKER" in os.environ:
        open(os.environ["SIM_MARKER"], "w").close()

    if sys.argv[1:2] == ["--bootstrap"]:
        sys.stdout.write("WORLD#0")
        sys.exit(0)

    args = sys.argv[1:]
    if args == ["crash"]:
        sys.stderr.write("simulation: crashed on purpose\\n")
        sys.exit(3)

    prior = sys.stdin.read()
    counter = int(prior.split("#", 1)[1])
    sys.stdout.write("WORLD#%d" % (counter + 1))
    """
)


def _turn(workdir: pathlib.Path, args: list[str], env_extra: dict[str, str] | None = None) -> int:
    env = dict(os.environ)
    env.update(env_extra or {})
    env["TURNKEEPER_CONFIG"] = str(workdir / "turnkeeper.json")
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(_PACKAGE_ROOT), env.get("PYTHONPATH", "")) if p
    )
    proc = subprocess.run(
        [sys.executable, "-m", "turnkeeper.run_harness", *args],
        cwd=str(workdir),
        env=env,
        stdout=subprocess.DEVNULL,
    )
    return proc.returncode


def _state(workdir: pathlib.Path) -> str:
    return (workdir / "state").read_text(encoding="utf-8")


def run_scenarios(workdir: pathlib.Path) -> list[str]:
    """Run scenarios A-D in workdir. Return a list of failure messages."""
    sim_path = workdir / "simulation.py"
    sim_path.write_text(_SIMULATION, encoding="utf-8")
    (workdir / "turnkeeper.json").write_text(
        json.dumps(
            {
                "state_path": "state",
                "bootstrap_command": [sys.executable, str(sim_path), "--bootstrap"],
                "continue_command": [sys.executable, str(sim_path)],
                "use_lock": True,
            }
        ),
        encoding="utf-8",
    )

    failures: list[str] = []

    rc = _turn(workdir, ["look"])
    if rc != 0 or _state(workdir) != "WORLD#0":
        failures.append(f"scenario A: rc={rc}, expected state WORLD#0")
        return failures

    rc = _turn(workdir, ["move", "north"])
    if rc != 0 or _state(workdir) != "WORLD#1":
        failures.append(f"scenario B: rc={rc}, expected state WORLD#1")
        return failures

    rc = _turn(workdir, ["crash"])
    if rc != 3:
        failures.append(f"scenario C: rc={rc}, expected mirrored exit code 3")
    if _state(workdir) != "WORLD#1":
        failures.append(f"scenario C: state became {_state(workdir)!r}, expected WORLD#1")

    marker = workdir / "observed"
    with StateStore(workdir / "state").locked():
        rc = _turn(workdir, ["move"], env_extra={"SIM_MARKER": str(marker)})
    if rc != 3:
        failures.append(f"scenario D: rc={rc}, expected 3 for a held lock")
    if marker.exists():
        failures.append("scenario D: program ran while the slot was locked")
    if _state(workdir) != "WORLD#1":
        failures.append(f"scenario D: state became {_state(workdir)!r}, expected WORLD#1")

    return failures


def main() -> int:
    try:
        with tempfile.TemporaryDirectory(prefix="turnkeeper-gate-") as tmp:
            failures = run_scenarios(pathlib.Path(tmp))
    except Exception as exc:  # noqa: BLE001
        print(f"CI-GATE EXCEPTION: {exc}", file=sys.stderr)
        return 1

    if failures:
        for failure in failures:
            print(f"CI-GATE FAIL: {failure}", file=sys.stderr)
        return 1

    print("CI-GATE: scenarios A-D passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
