"""JSON file persistence for key records.

The whole collection lives in memory and is rewritten to disk after every
change. Callers that mutate must hold :attr:`KeyStore.lock` across
"read, decide, save" so that issue, redeem and the expiry sweep never
interleave.
"""
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Iterable, Tuple, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import StorageError
from .models import KeyRecord

logger = logging.getLogger(__name__)

_records_adapter = TypeAdapter(Tuple[KeyRecord, ...])


class KeyStore:
    """Owns the key collection and its backing file."""

    def __init__(self, path: Union[str, Path] = "keys.json"):
        self.path = Path(path)
        self.lock = threading.RLock()
        self._records: Tuple[KeyRecord, ...] = ()

    @property
    def records(self) -> Tuple[KeyRecord, ...]:
        """Immutable snapshot of the collection; safe to read without the lock."""
        return self._records

    def load(self) -> Tuple[KeyRecord, ...]:
        """Read the file into memory, creating an empty one if missing.

        Raises:
            StorageError: the file cannot be read or does not hold a valid
                list of key records. The in-memory collection is left as is.
        """
        with self.lock:
            if not self.path.exists():
                logger.info(f"No key file at {self.path}, creating an empty one")
                self.save(())
                return self._records

            try:
                raw = self.path.read_bytes()
                records = _records_adapter.validate_json(raw)
            except OSError as e:
                raise StorageError(f"Could not read {self.path}: {e}") from e
            except PydanticValidationError as e:
                raise StorageError(f"Corrupt key file {self.path}: {e.error_count()} error(s)") from e

            seen = set()
            for record in records:
                if record.id in seen:
                    raise StorageError(f"Corrupt key file {self.path}: duplicate key {record.id}")
                seen.add(record.id)

            self._records = records
            logger.info(f"Loaded {len(records)} keys from {self.path}")
            return self._records

    def save(self, records: Iterable[KeyRecord]) -> None:
        """Persist the full collection, then make it the in-memory state.

        The file is written to a temporary sibling and moved into place, so
        a failed write leaves both the old file and memory untouched.
        """
        records = tuple(records)
        payload = json.dumps([r.to_json() for r in records], ensure_ascii=False, indent=2)

        with self.lock:
            tmp_name = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
                )
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except OSError as e:
                if tmp_name and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                logger.error(f"Failed to write {self.path}: {e}")
                raise StorageError(f"Could not write {self.path}: {e}") from e

            self._records = records

    def flush(self) -> None:
        """Write the current in-memory collection back to disk."""
        with self.lock:
            self.save(self._records)
            logger.info(f"Flushed {len(self._records)} keys to {self.path}")

    def __len__(self) -> int:
        return len(self._records)
