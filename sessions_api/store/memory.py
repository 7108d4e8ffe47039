"""In-process record store, the default when no database URL is configured."""

import copy
import logging
import threading
from typing import Any, Dict, Iterable, Mapping, Optional

from ..errors import ConflictError, NotFoundError
from .base import Record, matches, new_record_id, normalize_unique_fields

logger = logging.getLogger(__name__)


class InMemoryRecordStore:
    """
    Dictionary-backed record store.

    A single lock serializes inserts so the uniqueness check and the write
    happen as one step. Records are copied in and out; callers never hold
    references to stored state.

    Args:
        unique_fields: Record type -> field names that must be unique
                       within that type (default: ``{"User": ("username",)}``)
    """

    def __init__(self, unique_fields: Optional[Mapping[str, Iterable[str]]] = None):
        self.unique_fields = normalize_unique_fields(unique_fields)
        self._records: Dict[str, Dict[str, Record]] = {}
        self._lock = threading.Lock()

    def insert(self, record_type: str, fields: Mapping[str, Any]) -> str:
        """
        Store a new record and return its generated id.

        Raises:
            ConflictError: If a unique field collides with an existing record
        """
        record = copy.deepcopy(dict(fields))
        record.pop("id", None)

        with self._lock:
            table = self._records.setdefault(record_type, {})

            for name in self.unique_fields.get(record_type, ()):
                if name not in record:
                    continue
                if any(matches(existing, {name: record[name]}) for existing in table.values()):
                    logger.info(f"Rejected duplicate {record_type}.{name}")
                    raise ConflictError(f"{record_type} with this {name} already exists", field=name)

            record_id = new_record_id()
            record["id"] = record_id
            table[record_id] = record

        logger.debug(f"Inserted {record_type} record", extra={"record_id": record_id})
        return record_id

    def find(self, record_type: str, query: Mapping[str, Any]) -> Optional[Record]:
        with self._lock:
            for record in self._records.get(record_type, {}).values():
                if matches(record, query):
                    return copy.deepcopy(record)
        return None

    def get(self, record_type: str, record_id: str) -> Optional[Record]:
        with self._lock:
            record = self._records.get(record_type, {}).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def delete(self, record_type: str, record_id: str) -> None:
        """
        Raises:
            NotFoundError: If no such record exists
        """
        with self._lock:
            table = self._records.get(record_type, {})
            if record_id not in table:
                raise NotFoundError(f"{record_type} not found", id=record_id)
            del table[record_id]

        logger.debug(f"Deleted {record_type} record", extra={"record_id": record_id})
