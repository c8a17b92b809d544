"""
Base Service Client - Resilient outbound HTTP for calls between services
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Literal, Mapping, Optional
from urllib.parse import urljoin
import json
import logging
import time

import httpx

from taskhub.core.config import settings
from taskhub.core.result import Err, FailureKind, Ok, ServiceFailure, ServiceResult

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

CONNECTION_FAILED_MESSAGE = "Service connection failed. Please try again later."
UNEXPECTED_ERROR_MESSAGE = "An error occurred while processing the service request."
UNEXPECTED_RESPONSE_MESSAGE = "Service returned an unexpected response."

# Failures that mean no response was received; these are the only ones retried
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.TimeoutException)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry schedule for connection-level failures.

    retries counts extra attempts, so a call makes at most retries + 1
    requests. "fixed" waits delay between attempts, "linear" waits
    delay * attempt.
    """
    retries: int = 3
    delay: float = 1.0
    backoff: Literal["fixed", "linear"] = "fixed"

    def delay_for(self, attempt: int) -> float:
        if self.backoff == "linear":
            return self.delay * attempt
        return self.delay

    @classmethod
    def from_settings(cls, backoff: Literal["fixed", "linear"] = "fixed") -> "RetryPolicy":
        return cls(retries=settings.HTTP_RETRIES, delay=settings.HTTP_RETRY_DELAY, backoff=backoff)


def classify_response(response: httpx.Response) -> ServiceResult:
    """
    Map a received response to Ok/Err.

    Called once per response: a response, even an error one, is final.
    """
    body = _parse_body(response)
    code = response.status_code

    if 200 <= code < 300:
        return Ok({"success": True} if body is None else body)

    if code == 400:
        kind, message = FailureKind.BAD_REQUEST, _body_message(body) or "Invalid request."
    elif code == 401:
        kind, message = FailureKind.UNAUTHORIZED, "Authentication required."
    elif code == 403:
        kind, message = FailureKind.FORBIDDEN, "Access denied."
    elif code == 404:
        kind, message = FailureKind.NOT_FOUND, "Requested resource not found."
    elif code == 422:
        kind, message = FailureKind.UNPROCESSABLE, _body_message(body) or "Input data is invalid."
    elif 500 <= code < 600:
        kind, message = FailureKind.SERVER_ERROR, "Server error occurred. Please contact the administrator."
    else:
        kind, message = FailureKind.UNKNOWN, "Unknown error occurred."

    return Err(ServiceFailure(
        kind=kind,
        message=message,
        error=f"HTTP {code}",
        status_code=code,
        body=body,
    ))


def require_object(result: ServiceResult) -> ServiceResult:
    """Fail a successful result whose body is not a JSON object"""
    if result.success and not isinstance(result.value, dict):
        return Err(ServiceFailure(
            FailureKind.INVALID_RESPONSE,
            UNEXPECTED_RESPONSE_MESSAGE,
            error=f"Expected a JSON object, got {type(result.value).__name__}",
            body=result.value,
        ))
    return result


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _body_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return None


class BaseServiceClient:
    """
    Shared wrapper for every call to a sibling service.

    Callers always get an Ok or Err back; transport exceptions never escape
    make_request. Subclasses set base_url and add one method per endpoint.
    """

    base_url: str = ""
    expects_object: bool = False  # Typed clients only accept JSON object bodies

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if base_url is not None:
            self.base_url = base_url
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.transport = transport  # Injected in tests (httpx.MockTransport)
        self.sleep = sleep

    def make_request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> ServiceResult:
        """
        Issue one logical request with timeout, bounded retry and normalization.

        Args:
            method: HTTP verb
            url: Absolute URL
            headers: Merged over the JSON content-type/accept defaults
            params: Query parameters, None values dropped
            body: dict/list serialized to JSON; str/bytes sent as-is
            timeout: Per-call override of the client timeout
            retry_policy: Per-call override of the client retry policy

        Returns:
            Ok(parsed body) or Err(ServiceFailure); with expects_object set, a
            2xx body that is not a JSON object is an INVALID_RESPONSE failure
        """
        policy = retry_policy or self.retry_policy
        attempt = 0

        try:
            request_options = self._prepare_options(headers, params, body, timeout)
        except (TypeError, ValueError) as e:
            logger.error(f"❌ Could not build {method.upper()} {url}: {e}", exc_info=True)
            return Err(ServiceFailure(FailureKind.UNEXPECTED, UNEXPECTED_ERROR_MESSAGE, error=str(e)))

        while True:
            attempt += 1
            try:
                with httpx.Client(transport=self.transport) as client:
                    response = client.request(method.upper(), url, **request_options)
                result = classify_response(response)
                return require_object(result) if self.expects_object else result
            except RETRYABLE_ERRORS as e:
                if attempt <= policy.retries:
                    wait = policy.delay_for(attempt)
                    logger.warning(
                        f"⚠️  {method.upper()} {url} failed (attempt {attempt}): {e}. Retrying in {wait}s..."
                    )
                    self.sleep(wait)
                    continue
                logger.error(f"❌ {method.upper()} {url} failed after {policy.retries} retries: {e}")
                return Err(ServiceFailure(FailureKind.CONNECTION, CONNECTION_FAILED_MESSAGE, error=str(e)))
            except Exception as e:
                logger.error(f"❌ Unexpected error calling {method.upper()} {url}: {e}", exc_info=True)
                return Err(ServiceFailure(FailureKind.UNEXPECTED, UNEXPECTED_ERROR_MESSAGE, error=str(e)))

    def _prepare_options(
        self,
        headers: Optional[Mapping[str, str]],
        params: Optional[Mapping[str, Any]],
        body: Any,
        timeout: Optional[float],
    ) -> Dict[str, Any]:
        merged_headers = dict(DEFAULT_HEADERS)
        if headers:
            merged_headers.update(headers)

        options: Dict[str, Any] = {
            "headers": merged_headers,
            "timeout": timeout if timeout is not None else self.timeout,
        }
        if params:
            options["params"] = {k: _query_value(v) for k, v in params.items() if v is not None}
        if body is not None:
            if isinstance(body, (dict, list)):
                options["content"] = json.dumps(body, default=str)
            else:
                options["content"] = body
        return options

    # HTTP method helpers for service clients

    def build_url(self, path: str) -> str:
        if not self.base_url:
            raise NotImplementedError(f"{type(self).__name__} has no base_url")
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    def get(self, path: str, **options) -> ServiceResult:
        return self.make_request("GET", self.build_url(path), **options)

    def post(self, path: str, **options) -> ServiceResult:
        return self.make_request("POST", self.build_url(path), **options)

    def put(self, path: str, **options) -> ServiceResult:
        return self.make_request("PUT", self.build_url(path), **options)

    def patch(self, path: str, **options) -> ServiceResult:
        return self.make_request("PATCH", self.build_url(path), **options)

    def delete(self, path: str, **options) -> ServiceResult:
        return self.make_request("DELETE", self.build_url(path), **options)

    @staticmethod
    def auth_headers(session_token: Optional[str] = None) -> Dict[str, str]:
        headers = {}
        if session_token:
            headers["Authorization"] = f"Bearer {session_token}"
        return headers


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return str(value)


def check_service_health(name: str, base_url: str, transport: Optional[httpx.BaseTransport] = None) -> dict:
    """
    Single-attempt liveness probe of a sibling's /up endpoint.
    Health checks must answer quickly, so no retries.
    """
    client = BaseServiceClient(
        base_url=base_url,
        timeout=settings.HEALTH_CHECK_TIMEOUT,
        retry_policy=RetryPolicy(retries=0, delay=0),
        transport=transport,
    )
    started = time.monotonic()
    result = client.get("/up")
    elapsed_ms = round((time.monotonic() - started) * 1000)
    if result.success:
        return {"status": "healthy", "response_time": elapsed_ms}
    return {"status": "unhealthy", "error": result.error.message}
