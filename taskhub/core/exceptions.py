"""
Exceptions - Error types rendered by the global exception handlers
"""

from typing import Any, Dict, Optional


class APIError(Exception):
    """
    Error with an exact JSON body.

    Services answer with several response shapes ({success, error},
    {errors: [...]}, {status, error, message}), so the payload is passed
    through untouched instead of being wrapped in FastAPI's {"detail": ...}.
    """

    def __init__(
        self,
        status_code: int,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(payload.get("error") or payload.get("message") or str(payload))
        self.status_code = status_code
        self.payload = payload
        self.headers = headers


class StatusError(Exception):
    """Illegal task status change, naming both the current and attempted state"""

    def __init__(self, current: str, attempted: str, conflict: bool = False):
        self.current = current
        self.attempted = attempted
        self.conflict = conflict  # True when another request changed the task first
        if conflict:
            message = "Task was modified by another request"
        else:
            message = f"Cannot transition from {current} to {attempted}"
        super().__init__(message)
        self.message = message
