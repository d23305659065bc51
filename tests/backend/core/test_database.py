import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from backend import database


@pytest.fixture
def legacy_engine(monkeypatch: pytest.MonkeyPatch):
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    with engine.begin() as connection:
        connection.execute(text(
            'CREATE TABLE provider_availability (id VARCHAR PRIMARY KEY, provider_id VARCHAR, date DATE, status VARCHAR)'
        ))
        connection.execute(text(
            'CREATE TABLE appointment_slots (id VARCHAR PRIMARY KEY, provider_id VARCHAR, '
            'slot_start_time DATETIME, slot_end_time DATETIME, status VARCHAR)'
        ))

    monkeypatch.setattr(database, 'engine', engine)
    monkeypatch.setattr(database, '_availability_schema_checked', False)
    monkeypatch.setattr(database, '_slot_schema_checked', False)
    return engine


def test_schema_upgrade_adds_missing_columns_and_indexes(legacy_engine) -> None:
    database.ensure_availability_schema()
    database.ensure_slot_schema()

    inspector = inspect(legacy_engine)
    availability_columns = {column['name'] for column in inspector.get_columns('provider_availability')}
    slot_columns = {column['name'] for column in inspector.get_columns('appointment_slots')}
    slot_indexes = {index['name'] for index in inspector.get_indexes('appointment_slots')}

    assert {'special_requirements', 'notes', 'max_appointments_per_slot', 'current_appointments'} <= availability_columns
    assert {'patient_id', 'booking_reference'} <= slot_columns
    assert 'idx_appointment_slots_provider_start' in slot_indexes
    assert database._availability_schema_checked
    assert database._slot_schema_checked


def test_schema_upgrade_is_idempotent(legacy_engine) -> None:
    database.ensure_slot_schema()
    database._slot_schema_checked = False

    database.ensure_slot_schema()

    columns = [column['name'] for column in inspect(legacy_engine).get_columns('appointment_slots')]
    assert columns.count('booking_reference') == 1
