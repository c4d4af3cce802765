from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from threading import Lock

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import declarative_base, sessionmaker

from queuebook.core import config


connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}
engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False

_partition_registry_lock = Lock()
# key -> [lock, number of threads holding or waiting for it]
_partition_locks: dict[tuple[str, date], list] = {}


def ensure_appointment_schema() -> None:
    """Create any appointment index missing from a table built by an older release."""
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        table = Base.metadata.tables.get('appointments')
        inspector = inspect(engine)

        if table is None or 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_indexes = {index['name'] for index in inspector.get_indexes('appointments')}
        with engine.begin() as connection:
            for index in sorted(table.indexes, key=lambda item: item.name):
                if index.name not in existing_indexes:
                    index.create(bind=connection)

        _appointment_schema_checked = True


@contextmanager
def partition_lock(provider_id: str, day: date) -> Iterator[None]:
    """Serialize writers for one provider's day within this process."""
    key = (provider_id, day)
    with _partition_registry_lock:
        entry = _partition_locks.get(key)
        if entry is None:
            entry = [Lock(), 0]
            _partition_locks[key] = entry
        entry[1] += 1

    try:
        with entry[0]:
            yield
    finally:
        with _partition_registry_lock:
            entry[1] -= 1
            if entry[1] == 0:
                del _partition_locks[key]
