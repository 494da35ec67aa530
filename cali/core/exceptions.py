"""
Error types shared by the model, persistence and HTTP layers.

Reads that match nothing return ``None``; only scoped mutations raise
``NotFoundOrUnauthorizedError``.
"""


class CaliError(Exception):
    """Base class for application errors."""


class ConfigurationError(CaliError):
    pass


class AppointmentValidationError(CaliError, ValueError):
    """The appointment is malformed or semantically invalid."""


class EmptyTitleError(AppointmentValidationError):
    def __init__(self) -> None:
        super().__init__("Title cannot be empty.")


class InvalidTimeError(AppointmentValidationError):
    def __init__(self) -> None:
        super().__init__("Start time and end time are required.")


class EndBeforeStartError(AppointmentValidationError):
    def __init__(self) -> None:
        super().__init__("End time must be after start time.")


class NotFoundOrUnauthorizedError(CaliError):
    """
    No row matched both the appointment id and the owner id.

    Missing and foreign-owned appointments are deliberately reported the same
    way so callers cannot probe for other users' appointments.
    """

    def __init__(self, appointment_id: int) -> None:
        super().__init__(f"Appointment {appointment_id} not found or unauthorized.")
        self.appointment_id = appointment_id


class StorageError(CaliError):
    """A store fault; the driver exception is kept as ``__cause__``."""


class ConstraintViolationError(StorageError):
    """The store rejected the write (check, foreign key or unique constraint)."""
