"""Storage abstraction for client-side persistence.

Stored records are small JSON objects addressed by an ordered list of path
segments (``["games", "<host>", "<username>"]``). Session records hold player
secrets and are treated as sensitive: the file-backed store writes them with
owner-only permissions (0o600) inside owner-only directories (0o700).
"""

import contextlib
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()

# Owner-only directory permissions for the data directory tree.
_DATA_DIR_MODE = 0o700

# Owner-only file permissions for stored records.
_DATA_FILE_MODE = 0o600


class DataStore(Protocol):
    """Protocol for persisting JSON records under a segmented path."""

    def read_json(self, path: list[str]) -> dict[str, Any] | None: ...

    def write_json(self, path: list[str], data: dict[str, Any]) -> None: ...

    def delete(self, path: list[str]) -> None: ...


class FileDataStore:
    """Stores each record as a JSON file below a root directory.

    Directories are created lazily on the first write. Writes are atomic
    (temp-file-then-rename) so a crash never leaves a truncated record behind.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: list[str]) -> Path:
        """Map path segments to a file below the root, rejecting traversal."""
        if not path or any(not segment for segment in path):
            raise ValueError(f"Invalid storage path: {path!r}")
        target = self._root.joinpath(*path).resolve()
        if not target.is_relative_to(self._root) or target == self._root:
            raise ValueError(f"Path traversal rejected: {path!r} resolves outside the data directory")
        return target

    def read_json(self, path: list[str]) -> dict[str, Any] | None:
        """Return the stored record, or None when it does not exist.

        Raises OSError when the file exists but cannot be read or parsed, so
        callers never mistake a damaged record for a missing one.
        """
        target = self._resolve(path)
        if not target.is_file():
            return None
        try:
            data = json.loads(target.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            msg = f"Failed to read {target}"
            raise OSError(msg) from exc
        if not isinstance(data, dict):
            msg = f"Expected JSON object at root in {target}"
            raise OSError(msg)
        return data

    def write_json(self, path: list[str], data: dict[str, Any]) -> None:
        target = self._resolve(path)
        directory = target.parent
        os.makedirs(str(directory), mode=_DATA_DIR_MODE, exist_ok=True)  # noqa: PTH103
        directory.chmod(_DATA_DIR_MODE)

        content = json.dumps(data, indent=2).encode("utf-8")
        fd, tmp_path = tempfile.mkstemp(dir=str(directory), prefix=".record_", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fchmod(f.fileno(), _DATA_FILE_MODE)
            Path(tmp_path).replace(target)
        except BaseException:
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
        logger.debug("stored record", path=str(target))

    def delete(self, path: list[str]) -> None:
        """Remove a record. Deleting a missing record is a no-op."""
        target = self._resolve(path)
        with contextlib.suppress(FileNotFoundError):
            target.unlink()


class MemoryDataStore:
    """Keeps records in a dict. Nothing survives the process."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, ...], dict[str, Any]] = {}

    def read_json(self, path: list[str]) -> dict[str, Any] | None:
        record = self._records.get(tuple(path))
        return copy.deepcopy(record) if record is not None else None

    def write_json(self, path: list[str], data: dict[str, Any]) -> None:
        self._records[tuple(path)] = copy.deepcopy(data)

    def delete(self, path: list[str]) -> None:
        self._records.pop(tuple(path), None)
