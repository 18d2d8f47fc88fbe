"""
JSON File Storage Implementation

DESIGN DECISION: Local JSON files are the persistent backend because:
1. A single local user needs no database server
2. Every collection is a readable file that can be inspected or backed up
3. Records are already JSON-serializable pydantic dumps

TRADEOFFS:
- Each write rewrites the whole collection (fine for one user's records)
- No transactions (single writer, sequential operations)
- No locking; concurrent writers are out of scope

The implementation follows the abstract interface, so we can swap
to SQLite later without changing the record stores.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bizhub.config import get_settings
from bizhub.models.audit import AuditEvent
from bizhub.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    StorageConnectionError,
    StorageError,
)


_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileClient:
    """
    Low-level file access wrapper.

    Handles the data directory and provides retry logic for writes.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        self._data_dir = Path(data_dir) if data_dir else get_settings().storage.data_path
        self._ready = False

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def connect(self) -> Path:
        """
        Make sure the data directory exists.
        """
        if not self._ready:
            try:
                self._data_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageConnectionError(
                    f"Cannot create data directory {self._data_dir}: {e}"
                )
            self._ready = True
        return self._data_dir

    def path_for(self, key: str) -> Path:
        """Map a storage key to its file."""
        safe = _UNSAFE_KEY_CHARS.sub("_", key)
        return self.connect() / f"{safe}.json"

    def read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {path.name}: {e}")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def write_json(self, path: Path, value: Any) -> None:
        """
        Write a value atomically: temp file in the same directory, then replace.
        """
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(value, fh)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def append_line(self, path: Path, line: str) -> None:
        with path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    JSON file implementation of key-value storage.

    Each key is stored as one `<key>.json` file in the data directory.
    """

    def __init__(self, client: Optional[JsonFileClient] = None):
        self._client = client or JsonFileClient()

    async def get_item(self, key: str) -> Optional[Any]:
        """Read a key's file, None if it doesn't exist."""
        return self._client.read_json(self._client.path_for(key))

    async def set_item(self, key: str, value: Any) -> None:
        """Replace a key's file."""
        try:
            self._client.write_json(self._client.path_for(key), value)
        except StorageError:
            raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {key}: {e}")

    async def remove_item(self, key: str) -> None:
        path = self._client.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}")

    async def clear(self) -> None:
        for path in self._client.connect().glob("*.json"):
            try:
                path.unlink()
            except OSError as e:
                raise StorageError(f"Failed to clear {path.name}: {e}")

    async def get_all_keys(self) -> list[str]:
        return sorted(path.stem for path in self._client.connect().glob("*.json"))


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    JSON-lines implementation of audit log storage.

    Audit events are append-only, one JSON object per line.
    """

    def __init__(
        self,
        log_path: Optional[Path] = None,
        client: Optional[JsonFileClient] = None,
    ):
        self._client = client or JsonFileClient()
        if log_path is None:
            configured = get_settings().storage.audit_log_file
            log_path = Path(configured) if configured else self._client.data_dir / "audit.jsonl"
        self._path = Path(log_path)

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._client.append_line(self._path, event.to_json_line())
            return True
        except OSError:
            # Don't raise - audit logging should not break the main flow.
            # AuditLogger records the failure in the local log.
            return False

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        events = []
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                for line in fh:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        events.append(AuditEvent.model_validate_json(line))
                    except ValueError:
                        continue  # Skip malformed lines
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}")
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        events = [
            e for e in self._read_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events()
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
