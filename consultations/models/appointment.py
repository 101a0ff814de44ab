"""Appointment model definitions."""

from datetime import datetime, time

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from consultations.database import Base
from consultations.models.user import User  # noqa: F401

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

APPOINTMENT_STATUSES = (
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_CANCELLED})

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"
PAYMENT_REFUNDED = "refunded"

PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_COMPLETED, PAYMENT_FAILED, PAYMENT_REFUNDED)


class Appointment(Base):
    """Represents one booked consultation and its lifecycle state."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(String(5), nullable=False)
    consultation_type = Column(String, nullable=False)
    package = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    duration = Column(Integer, nullable=False)
    client_questions = Column(JSON, nullable=False, default=list)

    status = Column(String, nullable=False, default=STATUS_PENDING)
    payment_status = Column(String, nullable=False, default=PAYMENT_PENDING)

    order_id = Column(String)
    payment_id = Column(String)
    paid_at = Column(DateTime)

    video_room_name = Column(String)
    video_room_url = Column(String)
    video_is_active = Column(Boolean, nullable=False, default=False)
    video_started_at = Column(DateTime)
    video_ended_at = Column(DateTime)
    video_recording_url = Column(String)

    rating = Column(Integer)
    review = Column(Text)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    user = relationship("User")

    @property
    def scheduled_start(self) -> datetime:
        hours, minutes = (int(part) for part in self.appointment_time.split(":"))
        return datetime.combine(self.appointment_date, time(hours, minutes))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
