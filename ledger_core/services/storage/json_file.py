"""
JSON File Storage Implementation

One file per key inside a directory. Writes go to a temporary file in the
same directory which then replaces the target, so a crash mid-write leaves
either the old state or the new state on disk, never a mix.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import retry, stop_after_attempt, wait_exponential

from ledger_core.config import get_settings
from ledger_core.services.storage.interface import StorageError, StoreInterface


class JsonFileStore(StoreInterface):
    """File-backed store for a single-user ledger."""

    def __init__(self, directory: Optional[str] = None):
        super().__init__()
        self._directory = Path(directory or get_settings().store.directory)

    def _path_for(self, key: str) -> Path:
        if not key or any(sep in key for sep in ("/", "\\")) or key.startswith("."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def load(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def save(self, key: str, payload: str) -> bool:
        path = self._path_for(key)
        tmp_name = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._directory,
                prefix=f".{key}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
            return True
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to write {path}: {e}")
