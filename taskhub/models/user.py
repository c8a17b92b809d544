"""
User Model - Represents accounts owned by the user service
"""

from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import Session, relationship
from datetime import datetime
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email

from taskhub.database import Base


class User(Base):
    """
    User table - stores authentication and profile information.
    Only the user service reads or writes this table.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Authentication fields
    email = Column(String(255), unique=True, nullable=False, index=True)  # Stored lower-case
    password_hash = Column(String(255), nullable=False)  # bcrypt hash, never returned by the API

    # Profile information
    name = Column(String(50), nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Sessions die with their user
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email}>"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def find_by_email(db: Session, email: str) -> Optional[User]:
    """Case-insensitive lookup"""
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


def validate_registration(
    db: Session,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    password_confirmation: Optional[str] = None,
) -> List[str]:
    """
    Check registration input against the account rules.

    Returns:
        Human-readable messages; empty when the input is acceptable
    """
    errors = []
    email = normalize_email(email)
    name = (name or "").strip()

    if not email:
        errors.append("Email can't be blank")
    elif not is_valid_email(email):
        errors.append("Email is invalid")
    elif find_by_email(db, email):
        errors.append("Email has already been taken")

    if not name:
        errors.append("Name can't be blank")
    elif len(name) < 2:
        errors.append("Name is too short (minimum is 2 characters)")
    elif len(name) > 50:
        errors.append("Name is too long (maximum is 50 characters)")

    if not password or len(password) < 8:
        errors.append("Password is too short (minimum is 8 characters)")
    elif password_confirmation is not None and password_confirmation != password:
        errors.append("Password confirmation doesn't match Password")

    return errors
