"""Service model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from queuebook.database import Base


class Service(Base):
    """A bookable service with a fixed duration."""
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    provider_id = Column(String(36), ForeignKey("providers.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    default_priority = Column(String, default='medium')
    allowed_priorities = Column(JSON, nullable=False, default=lambda: ['low', 'medium', 'high', 'urgent'])
    max_advance_booking_days = Column(Integer, default=30)
    allow_walk_in = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)

    provider = relationship("Provider", back_populates="services")
