"""
Schemas Package - Exports all Pydantic schemas
"""

from taskhub.schemas.user import (
    UserRegister,
    UserLogin,
    UserResponse,
    Identity,
    ProfileUpdate,
)
from taskhub.schemas.task import (
    TaskCreate,
    TaskUpdate,
    StatusUpdate,
    BulkChanges,
    BulkUpdate,
    TaskResponse,
)
from taskhub.schemas.analytics import (
    EventCreate,
    SummaryResponse,
)
from taskhub.schemas.files import (
    FileAttachmentCreate,
    FileCategoryCreate,
    FileCheck,
    SimpleFileCreate,
)

# Export all schemas for convenient importing
__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "Identity",
    "ProfileUpdate",
    "TaskCreate",
    "TaskUpdate",
    "StatusUpdate",
    "BulkChanges",
    "BulkUpdate",
    "TaskResponse",
    "EventCreate",
    "SummaryResponse",
    "FileAttachmentCreate",
    "FileCategoryCreate",
    "FileCheck",
    "SimpleFileCreate",
]
