"""
Record store interface.

A record store keeps typed records (``"User"``, ...) as plain dictionaries
keyed by a generated string id. Implementations must enforce the unique
fields configured per record type atomically with the insert.
"""

import uuid
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Tuple

Record = Dict[str, Any]

# username is unique for the default user record type
DEFAULT_UNIQUE_FIELDS: Dict[str, Tuple[str, ...]] = {"User": ("username",)}


class RecordStore(Protocol):
    def insert(self, record_type: str, fields: Mapping[str, Any]) -> str: ...
    def find(self, record_type: str, query: Mapping[str, Any]) -> Optional[Record]: ...
    def get(self, record_type: str, record_id: str) -> Optional[Record]: ...
    def delete(self, record_type: str, record_id: str) -> None: ...


def new_record_id() -> str:
    return uuid.uuid4().hex


def normalize_unique_fields(
    unique_fields: Optional[Mapping[str, Iterable[str]]],
) -> Dict[str, Tuple[str, ...]]:
    if unique_fields is None:
        unique_fields = DEFAULT_UNIQUE_FIELDS
    return {record_type: tuple(fields) for record_type, fields in unique_fields.items()}


def matches(record: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """Field-equality match; a field absent from the record never matches."""
    return all(name in record and record[name] == value for name, value in query.items())
