"""
Frontend API - Browser-facing JSON aggregator (frontend service)

Holds no data of its own: every route calls sibling services with the
caller's session token and turns their results into one response.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from taskhub.api.auth import clear_session_cookie, set_session_cookie
from taskhub.clients.analytics_service import AnalyticsServiceClient
from taskhub.clients.file_service import FileServiceClient
from taskhub.clients.task_service import TaskServiceClient
from taskhub.clients.user_service import UserServiceClient
from taskhub.core.dependencies import (
    AuthContext,
    TokenSource,
    extract_token,
    get_user_service_client,
    optional_user,
    require_user,
)
from taskhub.core.result import FailureKind, ServiceFailure
from taskhub.core.security import mask_token
from taskhub.models.task import TaskStatus
from taskhub.schemas import Identity, StatusUpdate, TaskCreate, UserLogin, UserRegister

logger = logging.getLogger(__name__)
router = APIRouter()

DEFAULT_ANALYTICS = {
    "total_tasks": 0,
    "completed_tasks": 0,
    "pending_tasks": 0,
    "completion_rate": 0.0,
}


def get_task_client() -> TaskServiceClient:
    return TaskServiceClient()


def get_analytics_client() -> AnalyticsServiceClient:
    return AnalyticsServiceClient()


def get_file_client() -> FileServiceClient:
    return FileServiceClient()


def data_object(body: dict, default: dict) -> dict:
    """The "data" object of a sibling response, or default when absent or malformed"""
    data = body.get("data")
    return data if isinstance(data, dict) and data else default


def failure_status(failure: ServiceFailure) -> int:
    if failure.kind == FailureKind.CONNECTION:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if failure.kind == FailureKind.INVALID_RESPONSE:
        return status.HTTP_502_BAD_GATEWAY
    if failure.status_code:
        return failure.status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def failure_response(failure: ServiceFailure) -> JSONResponse:
    """Relay a sibling failure with its message and a matching status"""
    content = {"success": False, "error": failure.message}
    if isinstance(failure.body, dict):
        if failure.body.get("error"):
            content["error"] = failure.body["error"]
        if failure.body.get("errors"):
            content["errors"] = failure.body["errors"]
    return JSONResponse(status_code=failure_status(failure), content=content)


def signed_in_response(body: dict, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Answer a successful login/registration and store its token in the cookie"""
    token = body.get("session_token")
    response = JSONResponse(status_code=status_code, content={"success": True, "user": body.get("user")})
    if token:
        set_session_cookie(response, token)
    else:
        logger.warning("⚠️  User service answered without a session token")
    return response


# ---- Authentication ----

@router.post("/auth/login")
def login(
    credentials: UserLogin,
    user_client: UserServiceClient = Depends(get_user_service_client)
):
    logger.info(f"➡️  Frontend login for {credentials.email}")
    result = user_client.login(credentials.email, credentials.password)
    if not result.success:
        logger.warning(f"⚠️  Login failed for {credentials.email}: {result.error.message}")
        return failure_response(result.error)
    return signed_in_response(result.value)


@router.post("/auth/register")
def register(
    user_data: UserRegister,
    user_client: UserServiceClient = Depends(get_user_service_client)
):
    logger.info(f"➡️  Frontend registration for {user_data.email}")
    result = user_client.register(
        user_data.name,
        user_data.email,
        user_data.password,
        user_data.password_confirmation,
    )
    if not result.success:
        return failure_response(result.error)
    return signed_in_response(result.value, status.HTTP_201_CREATED)


@router.post("/auth/logout")
def logout(
    request: Request,
    user_client: UserServiceClient = Depends(get_user_service_client)
):
    """Best-effort logout at the user service; the cookie is cleared regardless"""
    token = extract_token(request, TokenSource.COOKIE)
    if token:
        result = user_client.logout(token)
        if not result.success:
            logger.error(f"❌ Logout of {mask_token(token)} failed at user service: {result.error.message}")

    response = JSONResponse(content={"success": True, "message": "Logged out successfully"})
    clear_session_cookie(response)
    return response


@router.get("/")
def home(user: Optional[Identity] = Depends(optional_user)):
    return {
        "authenticated": user is not None,
        "user": user.model_dump(mode="json") if user else None,
    }


# ---- Dashboard ----

@router.get("/dashboard")
def dashboard(
    auth: AuthContext = Depends(require_user),
    task_client: TaskServiceClient = Depends(get_task_client),
    analytics_client: AnalyticsServiceClient = Depends(get_analytics_client)
):
    """
    Recent tasks plus headline analytics.

    Each half falls back to an empty default on its own and reports why
    under errors, so one slow sibling never blanks the whole page.
    """
    errors = []

    tasks_result = task_client.get_user_tasks(auth.token, limit=5)
    if tasks_result.success:
        recent_tasks = tasks_result.value.get("tasks") or []
    else:
        recent_tasks = []
        errors.append(f"Tasks: {tasks_result.error.message}")

    analytics_result = analytics_client.get_dashboard_summary(auth.token)
    if analytics_result.success:
        analytics = data_object(analytics_result.value, dict(DEFAULT_ANALYTICS))
    else:
        analytics = dict(DEFAULT_ANALYTICS)
        errors.append(f"Analytics: {analytics_result.error.message}")

    if errors:
        logger.warning(f"⚠️  Dashboard for user {auth.user_id} degraded: {errors}")

    return {
        "success": True,
        "user": auth.user.model_dump(mode="json"),
        "recent_tasks": recent_tasks,
        "analytics": analytics,
        "errors": errors,
    }


# ---- Tasks ----

@router.get("/tasks")
def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    date_filter: Optional[str] = Query(None, alias="filter"),
    auth: AuthContext = Depends(require_user),
    task_client: TaskServiceClient = Depends(get_task_client)
):
    result = task_client.get_user_tasks(auth.token, status=status_filter, priority=priority, filter=date_filter)
    if not result.success:
        return failure_response(result.error)
    return {"success": True, "tasks": result.value.get("tasks") or [], "total": result.value.get("total", 0)}


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
def create_task(
    task_data: TaskCreate,
    auth: AuthContext = Depends(require_user),
    task_client: TaskServiceClient = Depends(get_task_client)
):
    result = task_client.create_task(auth.token, task_data.model_dump(mode="json", exclude_none=True))
    if not result.success:
        return failure_response(result.error)
    return {"success": True, "task": result.value.get("task"), "message": "Task created successfully"}


@router.patch("/tasks/{task_id}/status")
def update_task_status(
    task_id: int,
    status_data: StatusUpdate,
    auth: AuthContext = Depends(require_user),
    task_client: TaskServiceClient = Depends(get_task_client)
):
    if not status_data.status:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Status parameter is required"},
        )

    if status_data.status == TaskStatus.COMPLETED.value:
        result = task_client.complete_task(auth.token, task_id)
    else:
        result = task_client.update_task_status(auth.token, task_id, status_data.status)

    if not result.success:
        return failure_response(result.error)
    return {"success": True, "task": result.value.get("task"), "message": "Task status updated successfully"}


@router.delete("/tasks/{task_id}")
def delete_task(
    task_id: int,
    auth: AuthContext = Depends(require_user),
    task_client: TaskServiceClient = Depends(get_task_client)
):
    result = task_client.delete_task(auth.token, task_id)
    if not result.success:
        return failure_response(result.error)
    return {"success": True, "message": "Task deleted successfully"}


# ---- Analytics ----

@router.get("/analytics")
def analytics_overview(
    days: int = Query(30, ge=1, le=365),
    auth: AuthContext = Depends(require_user),
    analytics_client: AnalyticsServiceClient = Depends(get_analytics_client)
):
    errors = []

    def fetch(label: str, result, default):
        if result.success:
            return data_object(result.value, default)
        errors.append(f"{label}: {result.error.message}")
        return default

    summary = fetch("Summary", analytics_client.get_dashboard_summary(auth.token), dict(DEFAULT_ANALYTICS))
    trend = fetch("Completion trend", analytics_client.get_completion_trend(auth.token, days=days), {"trend_data": []})
    priorities = fetch("Priority distribution", analytics_client.get_priority_distribution(auth.token), {"distribution": {}})

    return {
        "success": True,
        "summary": summary,
        "completion_trend": trend.get("trend_data", []),
        "priority_distribution": priorities.get("distribution", {}),
        "errors": errors,
    }


# ---- Files ----

@router.get("/files")
def list_files(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    auth: AuthContext = Depends(require_user),
    file_client: FileServiceClient = Depends(get_file_client)
):
    result = file_client.get_user_files(auth.user_id, auth.token, page=page, per_page=per_page, search=search)
    if not result.success:
        return failure_response(result.error)
    data = data_object(result.value, {})
    return {"success": True, "files": data.get("items") or [], "pagination": data.get("pagination")}


@router.delete("/files/{file_id}")
def delete_file(
    file_id: int,
    auth: AuthContext = Depends(require_user),
    file_client: FileServiceClient = Depends(get_file_client)
):
    """Delete one of the caller's attachments; other users' files answer 404"""
    lookup = file_client.get_file(file_id, auth.token)
    if not lookup.success:
        return failure_response(lookup.error)
    owner_id = data_object(lookup.value, {}).get("user_id")
    if owner_id != auth.user_id:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"success": False, "error": "File not found"},
        )

    result = file_client.delete_file(file_id, auth.token)
    if not result.success:
        return failure_response(result.error)
    return {"success": True, "message": "File deleted successfully"}
