"""Scheduled video-room deletions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from consultations.database import Base


class RoomTeardown(Base):
    """A room deletion that is due at ``due_at`` and done once ``completed_at`` is set."""
    __tablename__ = "room_teardowns"

    id = Column(Integer, primary_key=True)
    room_name = Column(String, nullable=False, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"))
    due_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)
    created_at = Column(DateTime, default=datetime.now)
