from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_availability_schema_checked = False
_slot_schema_checked = False


def ensure_availability_schema() -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    with _schema_lock:
        if _availability_schema_checked:
            return

        inspector = inspect(engine)

        if 'provider_availability' not in inspector.get_table_names():
            _availability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('provider_availability')}
        migration_steps = [
            ('special_requirements', 'ALTER TABLE provider_availability ADD COLUMN special_requirements JSON'),
            ('notes', 'ALTER TABLE provider_availability ADD COLUMN notes VARCHAR'),
            (
                'max_appointments_per_slot',
                'ALTER TABLE provider_availability ADD COLUMN max_appointments_per_slot INTEGER DEFAULT 1',
            ),
            (
                'current_appointments',
                'ALTER TABLE provider_availability ADD COLUMN current_appointments INTEGER DEFAULT 0',
            ),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_provider_availability_provider_date '
                    'ON provider_availability(provider_id, date)'
                )
            )
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_provider_availability_date_status '
                    'ON provider_availability(date, status)'
                )
            )

        _availability_schema_checked = True


def ensure_slot_schema() -> None:
    global _slot_schema_checked

    if _slot_schema_checked:
        return

    with _schema_lock:
        if _slot_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointment_slots' not in inspector.get_table_names():
            _slot_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointment_slots')}
        migration_steps = [
            ('patient_id', 'ALTER TABLE appointment_slots ADD COLUMN patient_id VARCHAR'),
            ('booking_reference', 'ALTER TABLE appointment_slots ADD COLUMN booking_reference VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointment_slots_provider_start '
                    'ON appointment_slots(provider_id, slot_start_time)'
                )
            )
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointment_slots_status_start '
                    'ON appointment_slots(status, slot_start_time)'
                )
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointment_slots_booking_reference '
                    'ON appointment_slots(booking_reference)'
                )
            )

        _slot_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
