"""
Record Store Base

DESIGN DECISION: Each collection (clients, projects, tasks, time
entries) is one JSON list under one key of the key-value store. A store
loads the whole list, replaces whole records and writes the whole list
back. With a single local writer this is simple and always consistent.

Failure policy shared by every store:
- Read failure: logged, treated as an empty collection
- Write failure of a primary record: logged, re-raised as StorageError
- Records that no longer validate are skipped on load and logged
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from bizhub.audit import AuditLogger, get_logger
from bizhub.config import get_settings
from bizhub.models.records import utc_now
from bizhub.storage import KeyValueStoreInterface, StorageError

if TYPE_CHECKING:
    from bizhub.repositories.consistency import ConsistencyUpdater


RecordT = TypeVar("RecordT", bound=BaseModel)

Clock = Callable[[], datetime]

# Fields a partial update may never overwrite
PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at"})


class RecordStore(Generic[RecordT]):
    """
    Generic CRUD over one collection.

    Subclasses set `collection`, `entity_type` and `model`, and add the
    cross-store side effects of their own mutations.
    """

    collection: str = ""
    entity_type: str = ""
    model: type[RecordT]

    def __init__(
        self,
        kv_store: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        key_prefix: Optional[str] = None,
    ):
        """
        Args:
            kv_store: Shared key-value backend
            audit_logger: Audit sink; a local-only logger when omitted
            clock: Returns the current aware UTC datetime
            key_prefix: Prefix for storage keys (defaults to settings)
        """
        self._kv = kv_store
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or utc_now
        if key_prefix is None:
            key_prefix = get_settings().storage.key_prefix
        self._key_prefix = key_prefix
        self._consistency: Optional["ConsistencyUpdater"] = None
        self._logger = get_logger(f"bizhub.repositories.{self.collection}")

    @property
    def storage_key(self) -> str:
        return self.key_for(self.collection)

    def key_for(self, name: str) -> str:
        return f"{self._key_prefix}{name}"

    def bind_consistency(self, updater: "ConsistencyUpdater") -> None:
        """Attach the updater that refreshes derived fields after mutations."""
        self._consistency = updater

    def now(self) -> datetime:
        return self._clock()

    # =========================================================================
    # LOAD / SAVE
    # =========================================================================

    async def _read_key(self, key: str) -> Optional[Any]:
        """Read a raw value; read failures are logged and become None."""
        try:
            return await self._kv.get_item(key)
        except StorageError as e:
            self._logger.error("storage_read_failed", key=key, error=str(e))
            await self._audit.log_storage_read_failed(key=key, error_message=str(e))
            return None

    async def _load(self) -> list[RecordT]:
        raw = await self._read_key(self.storage_key)
        if not raw:
            return []
        if not isinstance(raw, list):
            self._logger.error(
                "collection_malformed",
                key=self.storage_key,
                value_type=type(raw).__name__,
            )
            return []

        records = []
        for item in raw:
            try:
                records.append(self.model.model_validate(item))
            except ValidationError as e:
                self._logger.warning(
                    "record_skipped",
                    key=self.storage_key,
                    record_id=item.get("id") if isinstance(item, dict) else None,
                    error=str(e),
                )
        return records

    async def _save(self, records: list[RecordT]) -> None:
        """Write the full collection; failures are re-raised."""
        try:
            await self._kv.set_item(
                self.storage_key,
                [record.model_dump(mode="json") for record in records],
            )
        except StorageError as e:
            self._logger.error("storage_write_failed", key=self.storage_key, error=str(e))
            await self._audit.log_storage_write_failed(
                key=self.storage_key,
                error_message=str(e),
                reraised=True,
            )
            raise

    # =========================================================================
    # RECORD HELPERS
    # =========================================================================

    def _build(self, data: Any, **overrides: Any) -> RecordT:
        """Validate a new record from a model or a dict."""
        if isinstance(data, BaseModel):
            data = data.model_dump()
        values = {k: v for k, v in dict(data).items() if k not in PROTECTED_FIELDS}
        now = self.now()
        values.update(created_at=now, updated_at=now)
        values.update(overrides)
        return self.model.model_validate(values)

    def _merge(self, record: RecordT, changes: dict[str, Any]) -> RecordT:
        """
        Validate a replacement record: stored values overlaid with changes.

        Raises:
            ValueError: If the merged record is invalid
        """
        values = record.model_dump()
        values.update({k: v for k, v in changes.items() if k not in PROTECTED_FIELDS})
        values["updated_at"] = self.now()
        return self.model.model_validate(values)

    @staticmethod
    def _changed_fields(old: BaseModel, new: BaseModel) -> list[str]:
        return [
            name for name in type(new).model_fields
            if name != "updated_at" and getattr(old, name) != getattr(new, name)
        ]

    @staticmethod
    def _index_of(records: list[RecordT], record_id: str) -> int:
        for i, record in enumerate(records):
            if record.id == record_id:
                return i
        return -1

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_all(self) -> list[RecordT]:
        """Every record in stored order (empty on read failure)."""
        return await self._load()

    async def get_by_id(self, record_id: str) -> Optional[RecordT]:
        """The record with this ID, or None."""
        for record in await self._load():
            if record.id == record_id:
                return record
        return None

    async def count(self) -> int:
        return len(await self._load())
