"""User model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, func
from cali.database import Base


class User(Base):
    """Owner of appointments. Users are never updated or deleted."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
