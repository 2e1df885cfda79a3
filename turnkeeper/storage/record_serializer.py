# turnkeeper/storage/record_serializer.py
# RecordSerializer -- writes TurnRecord and FailureRecord JSON files.
#
# File name format: {turn_id}_{RESULT}_{timestamp}.json
# runs_dir is created if it does not exist.
# Records are audit output only. The harness never reads them back.

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from turnkeeper.data_models.failure_record import FailureRecord
from turnkeeper.data_models.turn_record import TurnRecord
from turnkeeper.harness_version import HARNESS_VERSION, RECORD_FORMAT_VERSION


def _compact_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")


class RecordSerializer:
    """Serializes turn and failure records into runs_dir."""

    def __init__(self, runs_dir: Union[str, Path]):
        self._runs_dir = Path(runs_dir)

    @property
    def runs_dir(self) -> Path:
        return self._runs_dir

    def write_turn(self, record: TurnRecord) -> Path:
        """Write a TurnRecord. Returns the path of the written file."""
        return self._write(f"{record.turn_id}_{record.result}", "turn", asdict(record))

    def write_failure(self, record: FailureRecord) -> Path:
        """Write a FailureRecord. Returns the path of the written file."""
        return self._write(f"{record.turn_id}_FAILURE", "failure", asdict(record))

    def _write(self, stem: str, kind: str, body: dict) -> Path:
        self._runs_dir.mkdir(parents=True, exist_ok=True)

        filename = f"{stem}_{_compact_timestamp()}.json"
        filepath = self._runs_dir / filename

        payload = {
            "format_version":  RECORD_FORMAT_VERSION,
            "harness_version": HARNESS_VERSION,
            "kind":            kind,
            "record":          body,
        }

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

        return filepath
