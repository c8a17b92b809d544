"""
FastAPI Dependencies - Reusable dependency injection functions

Two sides of session authentication live here:
    - Caller side (task, analytics, frontend services): extract the token,
      ask the user service who it belongs to, remember the answer for the
      rest of the request.
    - User service side: look the session row up directly.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from dataclasses import dataclass
from typing import Callable, Optional
import enum
import logging

from taskhub.clients.user_service import UserServiceClient
from taskhub.core.config import settings
from taskhub.core.exceptions import APIError
from taskhub.core.result import FailureKind, ServiceFailure
from taskhub.core.security import mask_token
from taskhub.database import get_db
from taskhub.models.session import UserSession, find_by_token
from taskhub.models.user import User
from taskhub.schemas.user import Identity

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Token"


class TokenSource(str, enum.Enum):
    """Where to look for a token once the Authorization header has none"""
    COOKIE = "cookie"  # Browser-facing services: session_token cookie
    HEADER = "header"  # API services: X-Session-Token header


def extract_token(request: Request, source: TokenSource) -> Optional[str]:
    """
    Pick the single token a request carries.

    A Bearer token always wins; the fallback is consulted only without one.

    Returns:
        Token string, or None when the request carries no candidate at all
    """
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    if source == TokenSource.COOKIE:
        token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    else:
        token = request.headers.get(SESSION_HEADER)
    return token or None


@dataclass
class AuthContext:
    """Outcome of verifying one request's token; computed at most once per request"""
    token: Optional[str]
    user: Optional[Identity] = None
    failure: Optional[ServiceFailure] = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> Optional[int]:
        return self.user.id if self.user else None


def get_user_service_client() -> UserServiceClient:
    """Overridden in tests to point verification at a fake or in-process user service"""
    return UserServiceClient()


def auth_context_dependency(source: TokenSource) -> Callable[..., AuthContext]:
    """
    Build the per-service dependency that resolves a request's AuthContext.

    FastAPI caches a dependency's value within one request, and the result
    is also kept on request.state.auth so middleware and handlers outside
    the dependency graph see the same answer without verifying again.
    """

    def resolve_auth(
        request: Request,
        client: UserServiceClient = Depends(get_user_service_client),
    ) -> AuthContext:
        cached = getattr(request.state, "auth", None)
        if cached is not None:
            return cached

        token = extract_token(request, source)
        if token is None:
            context = AuthContext(token=None)
        else:
            result = client.verify_session(token)
            if result.success:
                context = AuthContext(token=token, user=result.value)
            else:
                context = AuthContext(token=token, failure=result.error)

        request.state.auth = context
        return context

    return resolve_auth


def require_user_dependency(resolver: Callable[..., AuthContext]) -> Callable[..., AuthContext]:
    """
    Wrap a resolver so unauthenticated requests are rejected.

    Raises:
        APIError 401: No token, or the user service rejected it
        APIError 503: The user service could not be reached
    """

    def require_user(auth: AuthContext = Depends(resolver)) -> AuthContext:
        if auth.authenticated:
            return auth

        if auth.token is None:
            logger.warning("⚠️  Request without session token")
            raise APIError(401, {"success": False, "error": "Authentication required"})

        failure = auth.failure
        if failure is not None and failure.kind in (FailureKind.CONNECTION, FailureKind.SERVER_ERROR):
            raise APIError(503, {"success": False, "error": "User service unavailable"})

        logger.warning(f"⚠️  Session {mask_token(auth.token)} rejected: {failure.message if failure else 'unknown'}")
        raise APIError(401, {"success": False, "error": failure.message if failure else "Invalid session"})

    return require_user


def optional_user_dependency(resolver: Callable[..., AuthContext]) -> Callable[..., Optional[Identity]]:
    """Wrap a resolver for routes that work with or without a signed-in user - never rejects"""

    def optional_user(auth: AuthContext = Depends(resolver)) -> Optional[Identity]:
        return auth.user

    return optional_user


# Browser-facing services (task, frontend): Bearer, then session_token cookie
cookie_auth = auth_context_dependency(TokenSource.COOKIE)
require_user = require_user_dependency(cookie_auth)
optional_user = optional_user_dependency(cookie_auth)

# API services (analytics): Bearer, then X-Session-Token header
header_auth = auth_context_dependency(TokenSource.HEADER)
require_api_user = require_user_dependency(header_auth)


# User service side - sessions are looked up locally

def get_current_session(request: Request, db: Session = Depends(get_db)) -> UserSession:
    """
    Resolve the session row a request's token refers to.

    An expired session is deleted on sight.

    Raises:
        APIError 401: "No session token provided", "Invalid session token"
            or "Session expired"
    """
    token = extract_token(request, TokenSource.COOKIE)
    if not token:
        raise APIError(401, {"success": False, "error": "No session token provided"})

    user_session = find_by_token(db, token)
    if user_session is None:
        logger.warning(f"⚠️  Unknown session token {mask_token(token)}")
        raise APIError(401, {"success": False, "error": "Invalid session token"})

    if user_session.is_expired():
        logger.info(f"🧹 Session {mask_token(token)} expired, deleting")
        db.delete(user_session)
        db.commit()
        raise APIError(401, {"success": False, "error": "Session expired"})

    return user_session


def get_session_user(user_session: UserSession = Depends(get_current_session)) -> User:
    """Owner of the current session, for the user service's own profile endpoints"""
    return user_session.user
