# turnkeeper/core/bootstrap_detector.py
# BootstrapDetector -- decides between the bootstrap and continuation paths.
#
# Pure. Total. No IO.

from enum import Enum
from typing import Union


class RunMode(str, Enum):
    """How the external program is launched for this turn."""
    FRESH = "FRESH"
    CONTINUING = "CONTINUING"


def classify(snapshot: Union[bytes, str]) -> RunMode:
    """
    FRESH if the snapshot is empty or whitespace-only, CONTINUING otherwise.

    Whitespace-only counts as empty: the check is textual, not a byte-length
    test, so a state file holding a lone newline still bootstraps.
    """
    if isinstance(snapshot, str):
        snapshot = snapshot.encode("utf-8")
    if snapshot.strip():
        return RunMode.CONTINUING
    return RunMode.FRESH


__all__ = ["RunMode", "classify"]
