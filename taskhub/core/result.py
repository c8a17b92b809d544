"""
Result Types - Tagged success/failure values returned across service boundaries
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar, Union
import enum

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying its payload"""
    value: T
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying a typed reason"""
    error: E
    success: bool = field(default=False, init=False)


Result = Union[Ok[T], Err[E]]


class FailureKind(str, enum.Enum):
    """Why a sibling-service call did not succeed"""
    BAD_REQUEST = "bad_request"  # 400
    UNAUTHORIZED = "unauthorized"  # 401
    FORBIDDEN = "forbidden"  # 403
    NOT_FOUND = "not_found"  # 404
    UNPROCESSABLE = "unprocessable"  # 422
    SERVER_ERROR = "server_error"  # 5xx
    UNKNOWN = "unknown"  # Any other status code
    CONNECTION = "connection"  # Refused / timed out after every retry
    UNEXPECTED = "unexpected"  # Anything raised while building or reading the call
    INVALID_RESPONSE = "invalid_response"  # 2xx whose body is not the JSON object expected


@dataclass(frozen=True)
class ServiceFailure:
    """Normalized failure of an outbound call"""
    kind: FailureKind
    message: str  # Human-readable, safe to show to end users
    error: Optional[str] = None  # Raw underlying error string
    status_code: Optional[int] = None
    body: Any = None  # Parsed response body when one was received

    @property
    def is_transport_failure(self) -> bool:
        return self.kind == FailureKind.CONNECTION

    def to_dict(self) -> dict:
        payload = {"success": False, "message": self.message}
        if self.error is not None:
            payload["error"] = self.error
        return payload


ServiceResult = Union[Ok[Any], Err[ServiceFailure]]
