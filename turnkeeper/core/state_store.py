# turnkeeper/core/state_store.py
# StateStore -- the single persistent state slot.
#
# The slot is one file holding raw bytes: whatever the external program last
# printed on stdout. No header, no version tag, no schema.
#
# Absence of the file is the empty state, not an error.
# commit() writes a sibling temp file, fsyncs it, then os.replace()s it onto
# the slot. A failed commit leaves the previous state and no temp file.
# locked() needs fcntl; without it, it raises rather than running unlocked.

import contextlib
import os
import tempfile
from pathlib import Path
from typing import Iterator, Union

from turnkeeper.core.exceptions import StateIOError, StateLockError

try:
    import fcntl
except ImportError:
    fcntl = None


def locking_supported() -> bool:
    return fcntl is not None


class StateStore:
    """
    Read/commit handle on the state slot.

    The harness receives one of these in its constructor; no other part of
    the package touches the state file directly.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock_path(self) -> Path:
        return self._path.with_name(self._path.name + ".lock")

    def read_current(self) -> bytes:
        """
        Return the bytes currently persisted, or b"" if the slot is absent.

        Raises StateIOError for any other read failure.
        """
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return b""
        except OSError as exc:
            raise StateIOError(
                f"Failed to read state from {self._path}: {exc}"
            ) from exc

    def commit(self, new_state: bytes) -> None:
        """
        Replace the persisted state with new_state.

        The previous state is unrecoverable once this returns.
        Raises StateIOError on any write failure. Never retries.
        """
        if not isinstance(new_state, (bytes, bytearray)):
            raise TypeError(
                f"new_state must be bytes; got {type(new_state).__name__}"
            )

        directory = self._path.parent
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                dir=str(directory),
            )
            with os.fdopen(fd, "wb") as f:
                f.write(new_state)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as exc:
            raise StateIOError(
                f"Failed to commit state to {self._path}: {exc}"
            ) from exc
        finally:
            if tmp_name is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)

    @contextlib.contextmanager
    def locked(self) -> Iterator[None]:
        """
        Hold an exclusive, non-blocking advisory lock for the block.

        Raises StateLockError if another turn holds it, or if the platform
        has no fcntl. The lock file is left in place; only the flock is
        released.
        """
        if fcntl is None:
            raise StateLockError(
                f"Cannot lock state slot {self._path}: fcntl is not available."
            )

        try:
            lock_file = open(self.lock_path, "a+b")
        except OSError as exc:
            raise StateIOError(
                f"Failed to open lock file {self.lock_path}: {exc}"
            ) from exc

        with lock_file:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError as exc:
                raise StateLockError(
                    f"State slot {self._path} is locked by another turn."
                ) from exc
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
