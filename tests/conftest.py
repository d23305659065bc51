import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.availability import AppointmentSlot, ProviderAvailability  # noqa: E402
from backend.models.provider import Provider  # noqa: E402

TABLES = [Provider.__table__, ProviderAvailability.__table__, AppointmentSlot.__table__]


@pytest.fixture
def availability_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def make_provider(availability_db):
    def _make_provider(**overrides) -> Provider:
        values = {
            'first_name': 'Asha',
            'last_name': 'Rao',
            'email': f'provider{availability_db.query(Provider).count()}@clinic.example',
            'specialization': 'Cardiology',
            'clinic_city': 'Mumbai',
            'clinic_state': 'Maharashtra',
        }
        values.update(overrides)
        provider = Provider(**values)
        availability_db.add(provider)
        availability_db.commit()
        availability_db.refresh(provider)
        return provider

    return _make_provider


@pytest.fixture
def provider(make_provider) -> Provider:
    return make_provider()
