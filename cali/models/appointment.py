"""Appointment model definitions."""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from cali.core.exceptions import EmptyTitleError, EndBeforeStartError, InvalidTimeError
from cali.database import Base


def to_storage_time(value: datetime | None) -> datetime | None:
    """Return ``value`` as naive UTC, the representation kept in the store."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def validate_appointment(title: str | None, start_time: datetime | None, end_time: datetime | None) -> None:
    if not title:
        raise EmptyTitleError()
    if start_time is None or end_time is None:
        raise InvalidTimeError()
    if to_storage_time(end_time) <= to_storage_time(start_time):
        raise EndBeforeStartError()


class Appointment(Base):
    """Represents a scheduled interval owned by one user."""
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_appointments_end_after_start"),
        Index("idx_appointments_user_start", "user_id", "start_time"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def validate(self) -> None:
        """Raise an ``AppointmentValidationError`` subclass if the appointment is invalid."""
        validate_appointment(self.title, self.start_time, self.end_time)
