"""Provider model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, JSON, String
from sqlalchemy.orm import relationship

from queuebook.database import Base


PROVIDER_TYPES = ('hospital', 'bank', 'government', 'clinic', 'other')


class Provider(Base):
    """An organization that offers bookable services."""
    __tablename__ = "providers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    provider_type = Column(String, default='other')
    working_hours = Column(JSON, nullable=False, default=dict)  # weekday name -> {open, close, is_open, breaks}
    holidays = Column(JSON, nullable=False, default=list)  # ISO dates
    created_at = Column(DateTime, default=datetime.now)

    services = relationship("Service", back_populates="provider", order_by="Service.created_at")
