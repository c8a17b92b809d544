"""
User Service Client - Login, registration and session verification calls
"""

from typing import Optional
import logging

from pydantic import ValidationError

from taskhub.clients.base import BaseServiceClient, RetryPolicy
from taskhub.core.config import settings
from taskhub.core.result import Err, FailureKind, Ok, Result, ServiceFailure, ServiceResult
from taskhub.core.security import mask_token
from taskhub.schemas.user import Identity

logger = logging.getLogger(__name__)

USER_SERVICE_UNAVAILABLE = "User service unavailable"
INVALID_SESSION = "Invalid session"


class UserServiceClient(BaseServiceClient):
    """
    Client for the user service, which owns accounts and sessions.

    verify_session is the only way any other service learns who a token
    belongs to; nothing validates tokens locally.
    """

    expects_object = True

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(base_url=base_url or settings.USER_SERVICE_URL, **kwargs)
        self.verify_policy = RetryPolicy(
            retries=self.retry_policy.retries,
            delay=self.retry_policy.delay,
            backoff="linear",  # delay * attempt between verification retries
        )

    def login(self, email: str, password: str) -> ServiceResult:
        return self.post(
            "/api/v1/auth/login",
            body={"email": email, "password": password},
            timeout=settings.AUTH_TIMEOUT,
        )

    def register(
        self,
        name: str,
        email: str,
        password: str,
        password_confirmation: Optional[str] = None,
    ) -> ServiceResult:
        return self.post(
            "/api/v1/auth/register",
            body={
                "name": name,
                "email": email,
                "password": password,
                "password_confirmation": password_confirmation,
            },
            timeout=settings.AUTH_TIMEOUT,
        )

    def logout(self, session_token: str) -> ServiceResult:
        return self.post(
            "/api/v1/auth/logout",
            headers=self.auth_headers(session_token),
            timeout=settings.AUTH_TIMEOUT,
        )

    def get_user(self, user_id: int) -> ServiceResult:
        return self.get(f"/api/v1/users/{user_id}", timeout=settings.AUTH_TIMEOUT)

    def verify_session(self, session_token: str) -> Result:
        """
        Ask the user service who owns a session token.

        Returns:
            Ok(Identity) when the session is live, otherwise Err(ServiceFailure)
            whose kind tells rejection (UNAUTHORIZED) apart from an
            unreachable user service (CONNECTION)
        """
        logger.debug(f"➡️  Verifying session {mask_token(session_token)}")

        result = self.get(
            "/api/v1/auth/verify",
            headers=self.auth_headers(session_token),
            timeout=settings.AUTH_TIMEOUT,
            retry_policy=self.verify_policy,
        )

        if not result.success:
            failure = result.error
            if failure.kind in (FailureKind.CONNECTION, FailureKind.UNEXPECTED):
                logger.error(f"❌ Session verification failed, user service unreachable: {failure.error}")
                return Err(ServiceFailure(
                    FailureKind.CONNECTION,
                    USER_SERVICE_UNAVAILABLE,
                    error=failure.error,
                ))
            if failure.kind == FailureKind.SERVER_ERROR:
                logger.error(f"❌ Session verification failed, user service error: {failure.error}")
                return Err(ServiceFailure(
                    FailureKind.SERVER_ERROR,
                    USER_SERVICE_UNAVAILABLE,
                    error=failure.error,
                    status_code=failure.status_code,
                ))
            message = INVALID_SESSION
            if isinstance(failure.body, dict) and failure.body.get("error"):
                message = failure.body["error"]
            logger.warning(f"⚠️  Session {mask_token(session_token)} rejected: {message}")
            return Err(ServiceFailure(
                FailureKind.UNAUTHORIZED,
                message,
                error=failure.error,
                status_code=failure.status_code,
            ))

        body = result.value
        if not (isinstance(body, dict) and body.get("success") is True and isinstance(body.get("user"), dict)):
            logger.warning(f"⚠️  Session {mask_token(session_token)}: verification body not successful")
            return Err(ServiceFailure(FailureKind.UNAUTHORIZED, INVALID_SESSION))

        try:
            identity = Identity(**body["user"])
        except ValidationError as e:
            logger.error(f"❌ Malformed identity from user service: {e}")
            return Err(ServiceFailure(FailureKind.UNAUTHORIZED, INVALID_SESSION, error=str(e)))

        logger.debug(f"✅ Session {mask_token(session_token)} belongs to user {identity.id}")
        return Ok(identity)
