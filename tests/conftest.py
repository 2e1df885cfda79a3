# tests/conftest.py
# Shared fixtures: a throwaway Python simulation and harness wiring around it.
#
# The simulation stands in for the external program:
#   --bootstrap        prints WORLD#0 (or $SIM_BOOTSTRAP_OUTPUT)
#   crash              exits 3 with no stdout
#   partial            prints PARTIAL, exits 5
#   identity           echoes stdin verbatim
#   sleep              sleeps 30s
#   anything else      reads WORLD#N from stdin, prints WORLD#N+1
# Every run appends {"argv": [...], "stdin": "..."} to observed.jsonl next
# to the script.

import io
import json
import sys
import textwrap
from pathlib import Path

import pytest

from turnkeeper.core.process_invoker import ProcessInvoker
from turnkeeper.core.state_store import StateStore
from turnkeeper.harness import Harness

_SIMULATION_SOURCE = textwrap.dedent(
    """
    import json
    import os
    import sys
    import time

    here = os.path.dirname(os.path.abspath(__file__))
    args = sys.argv[1:]
    bootstrap = args[:1] == ["--bootstrap"]
    stdin_text = "" if bootstrap else sys.stdin.read()

    with open(os.path.join(here, "observed.jsonl"), "a") as f:
        f.write(json.dumps({"argv": args, "stdin": stdin_text}) + "\\n")

    if bootstrap:
        sys.stdout.write(os.environ.get("SIM_BOOTSTRAP_OUTPUT", "WORLD#0"))
        sys.exit(int(os.environ.get("SIM_BOOTSTRAP_STATUS", "0")))
    if args == ["crash"]:
        sys.stderr.write("simulation: crashed\\n")
        sys.exit(3)
    if args == ["partial"]:
        sys.stdout.write("PARTIAL")
        sys.exit(5)
    if args == ["identity"]:
        sys.stdout.write(stdin_text)
        sys.exit(0)
    if args == ["sleep"]:
        time.sleep(30)
        sys.exit(0)

    counter = int(stdin_text.strip().split("#", 1)[1])
    sys.stdout.write("WORLD#%d" % (counter + 1))
    """
)


class Simulation:
    """Paths and helpers for the throwaway simulation in one tmp dir."""

    def __init__(self, root: Path):
        self.root = root
        self.script = root / "simulation.py"
        self.script.write_text(_SIMULATION_SOURCE, encoding="utf-8")
        self.state_path = root / "state"
        self.observed_path = root / "observed.jsonl"

    @property
    def bootstrap_command(self):
        return [sys.executable, str(self.script), "--bootstrap"]

    @property
    def continue_command(self):
        return [sys.executable, str(self.script)]

    def observed(self):
        if not self.observed_path.exists():
            return []
        lines = self.observed_path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines if line]


@pytest.fixture
def simulation(tmp_path: Path) -> Simulation:
    return Simulation(tmp_path)


@pytest.fixture
def echo_stream() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture
def make_invoker(simulation: Simulation, echo_stream: io.BytesIO):
    def _make(**overrides) -> ProcessInvoker:
        kwargs = dict(
            bootstrap_command=simulation.bootstrap_command,
            continue_command=simulation.continue_command,
            echo_stream=echo_stream,
        )
        kwargs.update(overrides)
        return ProcessInvoker(**kwargs)
    return _make


@pytest.fixture
def make_harness(simulation: Simulation, make_invoker):
    def _make(failure_policy: str = "preserve", use_lock: bool = False, **invoker_overrides) -> Harness:
        return Harness(
            store=StateStore(simulation.state_path),
            invoker=make_invoker(**invoker_overrides),
            failure_policy=failure_policy,
            use_lock=use_lock,
        )
    return _make
