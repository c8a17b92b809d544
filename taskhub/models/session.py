"""
Session Model - Server-side login sessions identified by opaque tokens
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import Session, relationship
from datetime import datetime, timedelta
from typing import Optional
import logging

from taskhub.core.config import settings
from taskhub.core.security import generate_session_token, mask_token
from taskhub.database import Base

logger = logging.getLogger(__name__)


def session_ttl() -> timedelta:
    return timedelta(hours=settings.SESSION_TTL_HOURS)


class UserSession(Base):
    """
    Session table - one row per authenticated login.

    The token is the only thing other services ever see; validity is decided
    here, by looking the row up and comparing expires_at with the clock.
    """
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")

    def __init__(self, **kwargs):
        kwargs.setdefault("token", generate_session_token())
        kwargs.setdefault("expires_at", datetime.utcnow() + session_ttl())
        super().__init__(**kwargs)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at > (now or datetime.utcnow())

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return not self.is_valid(now)

    def extend_expiry(self, now: Optional[datetime] = None) -> datetime:
        """Push expiry a full renewal window past now (caller commits)"""
        self.expires_at = (now or datetime.utcnow()) + session_ttl()
        return self.expires_at

    def __repr__(self):
        return f"<UserSession {mask_token(self.token)} user={self.user_id} expires={self.expires_at}>"


def create_session(db: Session, user) -> UserSession:
    """Create and persist a new session for user"""
    user_session = UserSession(user_id=user.id)
    db.add(user_session)
    db.commit()
    db.refresh(user_session)
    logger.info(f"✅ Session {mask_token(user_session.token)} created for user {user.id}")
    return user_session


def find_by_token(db: Session, token: Optional[str]) -> Optional[UserSession]:
    if not token:
        return None
    return db.query(UserSession).filter(UserSession.token == token).first()


def destroy_user_sessions(db: Session, user_id: int) -> int:
    """Delete every session of a user (caller commits)"""
    return (
        db.query(UserSession)
        .filter(UserSession.user_id == user_id)
        .delete(synchronize_session=False)
    )


def cleanup_expired(db: Session, now: Optional[datetime] = None) -> int:
    """
    Sweep sessions whose expiry has passed.

    Only already-expired rows are targeted, so a sweep never races with a
    verification that is extending a live session.

    Returns:
        Number of sessions removed
    """
    now = now or datetime.utcnow()
    removed = (
        db.query(UserSession)
        .filter(UserSession.expires_at <= now)
        .delete(synchronize_session=False)
    )
    db.commit()
    if removed:
        logger.info(f"🧹 Removed {removed} expired sessions")
    return removed
