"""
Security Module - Password hashing and opaque session token generation
"""

from passlib.context import CryptContext
import logging
import uuid

from taskhub.core.config import settings

logger = logging.getLogger(__name__)

# Password hashing context - bcrypt with configurable cost factor
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",  # Automatically upgrade old hashes
    bcrypt__rounds=settings.BCRYPT_ROUNDS,  # Cost factor (higher = more secure but slower)
)


def hash_password(password: str) -> str:
    """
    bcrypt hash for User.password_hash.

    bcrypt adds its own salt, so two hashes of the same password differ.
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a login or current-password attempt against the stored hash.
    A corrupted hash counts as a mismatch.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"❌ Password verification error: {str(e)}")
        return False  # If hash is corrupted, deny access


def generate_session_token() -> str:
    """
    Create an opaque session token.

    Tokens carry no claims - their only meaning is the server-side session
    row they identify, so a random UUID is enough.
    """
    return str(uuid.uuid4())


def mask_token(token: str) -> str:
    """Short token prefix for log lines"""
    if not token:
        return "blank"
    return f"{token[:8]}..."
