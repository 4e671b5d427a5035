"""Order number allocation.

Numbers come from a single named counter advanced with one atomic
increment-and-read. ``MemorySequenceStore`` serves development and tests;
``SqlSequenceStore`` issues ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING``
so concurrent processes never observe the same value.

Set ``ORDER_COUNTER_DATABASE_URI`` to use the SQL store.
"""

import os
import threading
from abc import ABC, abstractmethod

import structlog
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine

logger = structlog.get_logger(__name__)

ORDER_SEQUENCE = "order_number"
NUMBER_PREFIX = "E-"
NUMBER_DIGITS = 6

metadata = MetaData()

counters = Table(
    "counters",
    metadata,
    Column("name", String(64), primary_key=True),
    Column("value", Integer, nullable=False),
)


def format_order_number(sequence: int) -> str:
    """``E-`` plus the lowest six digits of ``sequence``, zero padded."""
    return f"{NUMBER_PREFIX}{sequence % 10**NUMBER_DIGITS:0{NUMBER_DIGITS}d}"


class SequenceStore(ABC):
    @abstractmethod
    def next_value(self, name: str) -> int:
        """Atomically increment counter ``name`` and return the new value."""
        ...


class MemorySequenceStore(SequenceStore):
    def __init__(self) -> None:
        self._values: dict[str, int] = {}
        self._lock = threading.Lock()

    def next_value(self, name: str) -> int:
        with self._lock:
            value = self._values.get(name, 0) + 1
            self._values[name] = value
            return value


class SqlSequenceStore(SequenceStore):
    def __init__(self, engine: Engine) -> None:
        if engine.dialect.name not in ("postgresql", "sqlite"):
            raise ValueError(f"Unsupported counter database: {engine.dialect.name}")
        self.engine = engine
        metadata.create_all(engine, tables=[counters])

    @classmethod
    def from_uri(cls, database_uri: str) -> "SqlSequenceStore":
        return cls(create_engine(database_uri))

    def next_value(self, name: str) -> int:
        insert = postgresql_insert if self.engine.dialect.name == "postgresql" else sqlite_insert
        statement = (
            insert(counters)
            .values(name=name, value=1)
            .on_conflict_do_update(
                index_elements=[counters.c.name],
                set_={"value": counters.c.value + 1},
            )
            .returning(counters.c.value)
        )
        with self.engine.begin() as connection:
            return connection.execute(statement).scalar_one()


_current_store: SequenceStore | None = None


def get_sequence_store() -> SequenceStore:
    """Return the current counter store. Defaults to MemorySequenceStore."""
    global _current_store
    if _current_store is None:
        database_uri = os.environ.get("ORDER_COUNTER_DATABASE_URI", "").strip()
        _current_store = SqlSequenceStore.from_uri(database_uri) if database_uri else MemorySequenceStore()
    return _current_store


def set_sequence_store(store: SequenceStore) -> None:
    global _current_store
    _current_store = store


def reset_sequence_store() -> None:
    global _current_store
    _current_store = None


def allocate_order_number() -> str:
    sequence = get_sequence_store().next_value(ORDER_SEQUENCE)
    number = format_order_number(sequence)
    logger.debug("Allocated order number", number=number, sequence=sequence)
    return number
