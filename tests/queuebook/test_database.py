import threading
from datetime import date

from sqlalchemy import create_engine, inspect, text

from queuebook import database
from queuebook.database import Base
from queuebook.models.appointment import Appointment
from queuebook.models.provider import Provider
from queuebook.models.service import Service

DAY = date(2026, 1, 5)


def test_partition_lock_forgets_released_partitions() -> None:
    with database.partition_lock('provider-1', DAY):
        assert ('provider-1', DAY) in database._partition_locks

    assert ('provider-1', DAY) not in database._partition_locks


def test_partition_lock_only_blocks_the_same_partition() -> None:
    entered = threading.Event()
    release = threading.Event()
    order: list[str] = []

    def _holder() -> None:
        with database.partition_lock('provider-1', DAY):
            entered.set()
            release.wait(5)
            order.append('holder')

    def _contender() -> None:
        entered.wait(5)
        with database.partition_lock('provider-1', DAY):
            order.append('contender')

    threads = [threading.Thread(target=_holder), threading.Thread(target=_contender)]
    for thread in threads:
        thread.start()

    entered.wait(5)
    with database.partition_lock('provider-2', DAY):
        order.append('other')
    release.set()
    for thread in threads:
        thread.join()

    assert order == ['other', 'holder', 'contender']
    assert ('provider-1', DAY) not in database._partition_locks


def test_ensure_appointment_schema_restores_missing_indexes(tmp_path, monkeypatch) -> None:
    engine = create_engine(f'sqlite:///{tmp_path / "schema.db"}')
    Base.metadata.create_all(bind=engine, tables=[Provider.__table__, Service.__table__, Appointment.__table__])
    with engine.begin() as connection:
        connection.execute(text('DROP INDEX uq_appointments_active_slot'))
        connection.execute(text('DROP INDEX idx_appointments_partition'))

    monkeypatch.setattr(database, 'engine', engine)
    monkeypatch.setattr(database, '_appointment_schema_checked', False)
    try:
        database.ensure_appointment_schema()
        index_names = {index['name'] for index in inspect(engine).get_indexes('appointments')}
    finally:
        engine.dispose()

    assert {'uq_appointments_active_slot', 'idx_appointments_partition'} <= index_names
