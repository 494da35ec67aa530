"""
Appointment persistence.

Every store fault is rolled back and re-raised as ``StorageError`` (or its
``ConstraintViolationError`` subclass) with the driver exception chained.
Scoped mutations match on id AND owner and raise
``NotFoundOrUnauthorizedError`` when nothing matches.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cali.core.exceptions import ConstraintViolationError, NotFoundOrUnauthorizedError, StorageError
from cali.models.appointment import Appointment, to_storage_time

logger = logging.getLogger(__name__)


class AppointmentRepository:
    """Gateway between appointment operations and the relational store."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _fail(self, action: str, exc: SQLAlchemyError) -> StorageError:
        self.db.rollback()
        if isinstance(exc, IntegrityError):
            return ConstraintViolationError(f"failed to {action} appointment: constraint violated")
        return StorageError(f"failed to {action} appointment")

    def create(self, appointment: Appointment) -> Appointment:
        """Insert ``appointment``; its id and timestamps are filled in from the store."""
        appointment.start_time = to_storage_time(appointment.start_time)
        appointment.end_time = to_storage_time(appointment.end_time)

        try:
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)
        except SQLAlchemyError as exc:
            raise self._fail("create", exc) from exc

        logger.info("Created appointment %s for user %s", appointment.id, appointment.user_id)
        return appointment

    def get(self, appointment_id: int) -> Optional[Appointment]:
        try:
            appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        except SQLAlchemyError as exc:
            raise self._fail("get", exc) from exc

        if appointment is None:
            logger.debug("Appointment %s not found", appointment_id)
        return appointment

    def list(self, user_id: int, start: datetime, end: datetime) -> List[Appointment]:
        """
        Appointments of ``user_id`` lying entirely inside ``[start, end]``.

        An appointment that only overlaps the window is not returned.
        """
        try:
            return (
                self.db.query(Appointment)
                .filter(
                    Appointment.user_id == user_id,
                    Appointment.start_time >= to_storage_time(start),
                    Appointment.end_time <= to_storage_time(end),
                )
                .order_by(Appointment.start_time.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            raise self._fail("list", exc) from exc

    def update(self, appointment: Appointment) -> Appointment:
        """
        Overwrite title, description and times of the row matching the id and owner.

        Returns the stored row with its refreshed ``updated_at``.
        """
        try:
            stored = (
                self.db.query(Appointment)
                .filter(
                    Appointment.id == appointment.id,
                    Appointment.user_id == appointment.user_id,
                )
                .first()
            )
            if stored is None:
                raise NotFoundOrUnauthorizedError(appointment.id)

            stored.title = appointment.title
            stored.description = appointment.description
            stored.start_time = to_storage_time(appointment.start_time)
            stored.end_time = to_storage_time(appointment.end_time)
            stored.updated_at = func.now()

            self.db.commit()
            self.db.refresh(stored)
        except SQLAlchemyError as exc:
            raise self._fail("update", exc) from exc

        logger.info("Updated appointment %s for user %s", stored.id, stored.user_id)
        return stored

    def delete(self, appointment_id: int, user_id: int) -> None:
        try:
            affected = (
                self.db.query(Appointment)
                .filter(
                    Appointment.id == appointment_id,
                    Appointment.user_id == user_id,
                )
                .delete(synchronize_session='auto')
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc) from exc

        if affected == 0:
            raise NotFoundOrUnauthorizedError(appointment_id)

        logger.info("Deleted appointment %s for user %s", appointment_id, user_id)
