"""
Record Store Package

Persistence for typed records (users, ...) behind the ``RecordStore``
interface. ``build_record_store`` chooses the implementation from the
``database`` options: SQL when a URL is configured, in-memory otherwise.
"""

from typing import Iterable, Mapping, Optional

from ..config import DatabaseOptions
from .base import Record, RecordStore
from .memory import InMemoryRecordStore
from .sql import SqlRecordStore


def build_record_store(
    options: Optional[DatabaseOptions] = None,
    unique_fields: Optional[Mapping[str, Iterable[str]]] = None,
) -> RecordStore:
    options = options or DatabaseOptions()
    if options.url:
        return SqlRecordStore(options.url, unique_fields=unique_fields, echo=options.echo)
    return InMemoryRecordStore(unique_fields=unique_fields)


__all__ = [
    "Record",
    "RecordStore",
    "InMemoryRecordStore",
    "SqlRecordStore",
    "build_record_store",
]
