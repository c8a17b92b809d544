"""
Event Tracker Utility - Forwards task lifecycle events to the analytics service
"""

from typing import Any, Dict, Optional
import logging

from taskhub.clients.analytics_service import AnalyticsServiceClient
from taskhub.core.config import settings
from taskhub.core.dependencies import AuthContext
from taskhub.models import Task

logger = logging.getLogger(__name__)


def track_task_event(
    client: AnalyticsServiceClient,
    auth: AuthContext,
    event_name: str,
    task: Task,
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Send one task event to analytics with the caller's session token.

    Tracking never affects the request that triggered it: a failed call is
    logged and dropped, and nothing is retried beyond the client's own policy.

    Args:
        client: Analytics service client
        auth: Verified caller; its token authenticates the event
        event_name: e.g. "task_created"
        task: Task the event is about
        metadata: Extra context merged over the task snapshot

    Returns:
        True if analytics accepted the event
    """
    if not settings.TRACK_TASK_EVENTS:
        return False

    payload = {
        "task_id": task.id,
        "task_title": task.title,
        "task_status": task.status,
        "task_priority": task.priority,
    }
    if metadata:
        payload.update(metadata)

    result = client.track_event(auth.token, event_name, event_type="task", metadata=payload)
    if not result.success:
        logger.error(f"❌ Failed to track {event_name} for task {task.id}: {result.error.message}")
        return False

    logger.debug(f"✅ Tracked {event_name} for task {task.id}")
    return True


def log_task_create(client: AnalyticsServiceClient, auth: AuthContext, task: Task) -> bool:
    """Helper function to track task creation"""
    return track_task_event(client, auth, "task_created", task)


def log_task_update(
    client: AnalyticsServiceClient,
    auth: AuthContext,
    task: Task,
    old_data: Dict[str, Any],
    new_data: Dict[str, Any],
) -> bool:
    """Helper function to track task update with before/after values of changed fields"""
    changes = {
        field: {"old": old_data.get(field), "new": value}
        for field, value in new_data.items()
        if old_data.get(field) != value
    }
    return track_task_event(client, auth, "task_updated", task, {"changes": changes})


def log_task_status_change(client: AnalyticsServiceClient, auth: AuthContext, task: Task, old_status: str) -> bool:
    event_name = "task_completed" if task.is_completed() else "task_status_changed"
    return track_task_event(client, auth, event_name, task, {"old_status": old_status, "new_status": task.status})


def log_task_delete(client: AnalyticsServiceClient, auth: AuthContext, task: Task) -> bool:
    """Helper function to track task deletion"""
    return track_task_event(client, auth, "task_deleted", task)
