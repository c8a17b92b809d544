"""
Utilities Package - Helper functions and tools

This package contains:
- event_tracker.py: Task lifecycle event forwarding to the analytics service
"""

from taskhub.utils.event_tracker import (
    track_task_event,
    log_task_create,
    log_task_update,
    log_task_status_change,
    log_task_delete,
)

# Export event tracking functions
__all__ = [
    "track_task_event",
    "log_task_create",
    "log_task_update",
    "log_task_status_change",
    "log_task_delete",
]
