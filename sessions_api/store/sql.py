"""
SQL record store.

Records of every type share one ``records`` table holding the fields as a
JSON document. Digests of unique fields are copied into ``record_keys``, whose
``UNIQUE(record_type, field, value)`` constraint makes the database itself
reject a duplicate, however many processes insert concurrently.
"""

import hashlib
import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from sqlalchemy import (
    JSON,
    Column,
    ForeignKey,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    delete,
    insert,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from ..errors import ConfigurationError, ConflictError, NotFoundError
from .base import Record, matches, new_record_id, normalize_unique_fields

logger = logging.getLogger(__name__)

metadata = MetaData()

records_table = Table(
    "records",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("record_type", String(64), nullable=False, index=True),
    Column("data", JSON, nullable=False),
)

record_keys_table = Table(
    "record_keys",
    metadata,
    Column("record_id", String(32), ForeignKey("records.id", ondelete="CASCADE"), nullable=False),
    Column("record_type", String(64), nullable=False),
    Column("field", String(64), nullable=False),
    Column("value", String(64), nullable=False),
    UniqueConstraint("record_type", "field", "value", name="uq_record_keys_type_field_value"),
)


def create_store_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    kwargs: Dict[str, Any] = {"echo": echo, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(url, **kwargs)


class SqlRecordStore:
    """
    SQLAlchemy-backed record store.

    Args:
        url: SQLAlchemy database URL (``sqlite:///sessions.db``, ``postgresql://...``)
        unique_fields: Record type -> field names that must be unique
        echo: Log emitted SQL
        engine: Use an existing engine instead of creating one from ``url``
    """

    def __init__(
        self,
        url: Optional[str] = None,
        unique_fields: Optional[Mapping[str, Iterable[str]]] = None,
        echo: bool = False,
        engine: Optional[Engine] = None,
    ):
        if engine is None:
            if not url:
                raise ConfigurationError("SqlRecordStore needs a database url or an engine")
            engine = create_store_engine(url, echo=echo)

        self.engine = engine
        self.unique_fields = normalize_unique_fields(unique_fields)
        metadata.create_all(self.engine)
        logger.info("Record store schema ensured", extra={"dialect": self.engine.dialect.name})

    def insert(self, record_type: str, fields: Mapping[str, Any]) -> str:
        """
        Store a new record and return its generated id.

        Raises:
            ConflictError: If a unique field collides with an existing record
        """
        record = dict(fields)
        record.pop("id", None)
        record_id = new_record_id()

        keys = [
            {
                "record_id": record_id,
                "record_type": record_type,
                "field": name,
                "value": _key_value(record[name]),
            }
            for name in self.unique_fields.get(record_type, ())
            if name in record
        ]

        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(records_table).values(id=record_id, record_type=record_type, data=record)
                )
                if keys:
                    conn.execute(insert(record_keys_table), keys)
        except IntegrityError as e:
            logger.info(f"Rejected duplicate {record_type} record")
            raise ConflictError(f"{record_type} violates a uniqueness constraint") from e

        logger.debug(f"Inserted {record_type} record", extra={"record_id": record_id})
        return record_id

    def find(self, record_type: str, query: Mapping[str, Any]) -> Optional[Record]:
        stmt = select(records_table.c.id, records_table.c.data).where(
            records_table.c.record_type == record_type
        )

        # narrow through the key table when the query names a unique field
        indexed = [name for name in self.unique_fields.get(record_type, ()) if name in query]
        for name in indexed:
            keys = record_keys_table.alias(f"key_{name}")
            stmt = stmt.where(
                records_table.c.id.in_(
                    select(keys.c.record_id).where(
                        keys.c.record_type == record_type,
                        keys.c.field == name,
                        keys.c.value == _key_value(query[name]),
                    )
                )
            )

        with self.engine.connect() as conn:
            for row in conn.execute(stmt):
                record = _to_record(row.id, row.data)
                if matches(record, query):
                    return record
        return None

    def get(self, record_type: str, record_id: str) -> Optional[Record]:
        stmt = select(records_table.c.id, records_table.c.data).where(
            records_table.c.record_type == record_type,
            records_table.c.id == record_id,
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).first()
        return _to_record(row.id, row.data) if row is not None else None

    def delete(self, record_type: str, record_id: str) -> None:
        """
        Raises:
            NotFoundError: If no such record exists
        """
        with self.engine.begin() as conn:
            conn.execute(
                delete(record_keys_table).where(record_keys_table.c.record_id == record_id)
            )
            result = conn.execute(
                delete(records_table).where(
                    records_table.c.record_type == record_type,
                    records_table.c.id == record_id,
                )
            )
            if result.rowcount == 0:
                raise NotFoundError(f"{record_type} not found", id=record_id)

        logger.debug(f"Deleted {record_type} record", extra={"record_id": record_id})

    def close(self) -> None:
        self.engine.dispose()


def _key_value(value: Any) -> str:
    """SHA-256 of the canonical JSON, so values of any length fit the key column."""
    encoded = json.dumps(value, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def _to_record(record_id: str, data: Mapping[str, Any]) -> Record:
    record = dict(data)
    record["id"] = record_id
    return record


__all__ = ["SqlRecordStore", "create_store_engine", "metadata"]
