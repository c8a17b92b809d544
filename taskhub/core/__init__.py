"""
Core Package - Configuration, security, results and errors

IMPORTANT: Only import config, security, result and exceptions here.
Dependencies must be imported directly to avoid circular imports.
"""

from taskhub.core.config import settings, get_settings
from taskhub.core.security import hash_password, verify_password, generate_session_token
from taskhub.core.result import Ok, Err, ServiceFailure, FailureKind
from taskhub.core.exceptions import APIError, StatusError

__all__ = [
    "settings",
    "get_settings",
    "hash_password",
    "verify_password",
    "generate_session_token",
    "Ok",
    "Err",
    "ServiceFailure",
    "FailureKind",
    "APIError",
    "StatusError",
]
