"""Provider model definitions."""

import uuid

from sqlalchemy import Boolean, Column, String
from sqlalchemy.orm import relationship

from backend.database import Base


class Provider(Base):
    """Represents a registered healthcare provider."""
    __tablename__ = "providers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    specialization = Column(String, nullable=False, default="")
    clinic_city = Column(String, nullable=False, default="")
    clinic_state = Column(String, nullable=False, default="")
    is_active = Column(Boolean, default=True)

    availabilities = relationship("ProviderAvailability", back_populates="provider")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
