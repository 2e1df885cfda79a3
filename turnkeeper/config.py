# turnkeeper/config.py
# HarnessConfig -- configuration for one harness invocation.
#
# The CLI interprets no flags: every argument belongs to the external
# program. Configuration therefore comes from, later wins:
#   1. Defaults below (they reproduce the original run script).
#   2. JSON file: $TURNKEEPER_CONFIG, else ./turnkeeper.json if present.
#   3. Environment: TURNKEEPER_<FIELD> for each field, e.g.
#      TURNKEEPER_STATE_PATH=save.txt, TURNKEEPER_CONTINUE_COMMAND="./sim --quiet".
#
# On any failure: raises ConfigError (exit code 2).

import json
import os
import shlex
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from turnkeeper.core import state_store
from turnkeeper.core.exceptions import ConfigError

CONFIG_FILENAME: str = "turnkeeper.json"
CONFIG_ENV_VAR:  str = "TURNKEEPER_CONFIG"
ENV_PREFIX:      str = "TURNKEEPER_"

FAILURE_POLICIES = ("preserve", "overwrite")

_COMMAND_FIELDS = {"bootstrap_command", "continue_command"}
_BOOL_FIELDS = {
    "forward_args_on_bootstrap",
    "echo_bootstrap_output",
    "echo_continuing_output",
    "use_lock",
}
_OPTIONAL_PATH_FIELDS = {"runs_dir"}

_TRUE_STRINGS  = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class HarnessConfig:
    """
    Fields:
      state_path                 -- The state slot.
      bootstrap_command          -- argv of the first-run build-and-run path.
      continue_command           -- argv of the pre-built executable.
      forward_args_on_bootstrap  -- Append caller args to the bootstrap argv.
      echo_bootstrap_output      -- Copy the bootstrap stdout to our stdout.
      echo_continuing_output     -- Copy the continuation stdout to our stdout.
      failure_policy             -- "preserve": never commit after a failed
                                    run. "overwrite": commit whatever the
                                    failed run printed, as the original
                                    shell redirection did.
      use_lock                   -- Hold <state_path>.lock for the turn.
                                    POSIX only; rejected where fcntl is
                                    unavailable.
      timeout_seconds            -- Kill the program after this long. None
                                    waits forever.
      runs_dir                   -- Directory for JSON turn/failure records.
                                    None disables records.
    """
    state_path:                str = "state"
    bootstrap_command:         Tuple[str, ...] = ("cargo", "run")
    continue_command:          Tuple[str, ...] = ("./target/release/cliciv",)
    forward_args_on_bootstrap: bool = False
    echo_bootstrap_output:     bool = True
    echo_continuing_output:    bool = False
    failure_policy:            str = "preserve"
    use_lock:                  bool = False
    timeout_seconds:           Optional[float] = None
    runs_dir:                  Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.state_path, str) or not self.state_path:
            raise ConfigError("state_path must be a non-empty string.")
        for name in _COMMAND_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, (list, tuple)) or not value or not all(
                isinstance(part, str) and part for part in value
            ):
                raise ConfigError(
                    f"{name} must be a non-empty list of non-empty strings; got {value!r}."
                )
            # Lists from JSON are normalised to tuples to keep the config hashable.
            object.__setattr__(self, name, tuple(value))
        for name in _BOOL_FIELDS:
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be a boolean; got {getattr(self, name)!r}.")
        if self.use_lock and not state_store.locking_supported():
            raise ConfigError("use_lock requires fcntl file locking, which this platform lacks.")
        if self.failure_policy not in FAILURE_POLICIES:
            raise ConfigError(
                f"failure_policy must be one of {FAILURE_POLICIES}; "
                f"got {self.failure_policy!r}."
            )
        if self.timeout_seconds is not None:
            if isinstance(self.timeout_seconds, bool) or not isinstance(
                self.timeout_seconds, (int, float)
            ) or self.timeout_seconds <= 0:
                raise ConfigError(
                    f"timeout_seconds must be a positive number or null; "
                    f"got {self.timeout_seconds!r}."
                )
        if self.runs_dir is not None and (
            not isinstance(self.runs_dir, str) or not self.runs_dir
        ):
            raise ConfigError(f"runs_dir must be a non-empty string or null; got {self.runs_dir!r}.")


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise ConfigError(f"{ENV_PREFIX}{name.upper()} must be a boolean; got {raw!r}.")


def _parse_env_value(name: str, raw: str) -> Any:
    if name in _COMMAND_FIELDS:
        try:
            return tuple(shlex.split(raw))
        except ValueError as exc:
            raise ConfigError(f"{ENV_PREFIX}{name.upper()} is not a valid command: {exc}") from exc
    if name in _BOOL_FIELDS:
        return _parse_bool(name, raw)
    if name == "timeout_seconds":
        if raw.strip() == "":
            return None
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigError(
                f"{ENV_PREFIX}TIMEOUT_SECONDS must be a number; got {raw!r}."
            ) from exc
    if name in _OPTIONAL_PATH_FIELDS and raw.strip() == "":
        return None
    return raw


def _load_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Failed to load or parse config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object.")

    known = {f.name for f in fields(HarnessConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in config file {path}: {', '.join(unknown)}.")
    return data


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    cwd:     Optional[Path] = None,
) -> HarnessConfig:
    """
    Build the effective HarnessConfig from defaults, file, and environment.

    A config file named by TURNKEEPER_CONFIG must exist. The implicit
    ./turnkeeper.json is optional.
    """
    if environ is None:
        environ = os.environ
    cwd = Path.cwd() if cwd is None else Path(cwd)

    values: Dict[str, Any] = {}

    explicit = environ.get(CONFIG_ENV_VAR)
    if explicit:
        config_path = Path(explicit)
        if not config_path.is_absolute():
            config_path = cwd / config_path
        if not config_path.exists():
            raise ConfigError(f"Config file named by {CONFIG_ENV_VAR} not found: {config_path}")
        values.update(_load_file(config_path))
    elif (cwd / CONFIG_FILENAME).exists():
        values.update(_load_file(cwd / CONFIG_FILENAME))

    for f in fields(HarnessConfig):
        raw = environ.get(ENV_PREFIX + f.name.upper())
        if raw is not None:
            values[f.name] = _parse_env_value(f.name, raw)

    try:
        return replace(HarnessConfig(), **values)
    except TypeError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


__all__ = [
    "CONFIG_FILENAME",
    "CONFIG_ENV_VAR",
    "ENV_PREFIX",
    "FAILURE_POLICIES",
    "HarnessConfig",
    "load_config",
]
