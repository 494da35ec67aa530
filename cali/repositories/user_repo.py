import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cali.core.exceptions import ConstraintViolationError, StorageError
from cali.models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Read and seed access to appointment owners."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as exc:
            raise StorageError("failed to get user") from exc

    def ensure(self, user_id: int, username: str) -> User:
        """Return the user with ``user_id``, creating it when missing."""
        existing = self.get(user_id)
        if existing is not None:
            return existing

        user = User(id=user_id, username=username)
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError as exc:
            self.db.rollback()
            raise ConstraintViolationError(f"failed to create user {username!r}") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"failed to create user {username!r}") from exc

        logger.info("Created user %s (%s)", user.id, user.username)
        return user
