"""
Models Package - Exports all database models for easy importing
"""

# Import all models to register them with SQLAlchemy Base
# This ensures create_all() knows about all tables
from taskhub.models.user import User
from taskhub.models.session import UserSession
from taskhub.models.task import Task, TaskStatus, TaskPriority
from taskhub.models.analytics import AnalyticsEvent, AnalyticsSummary, EventType, MetricType, TimePeriod
from taskhub.models.files import FileAttachment, FileCategory, SimpleFile, UploadStatus

__all__ = [
    "User",
    "UserSession",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "AnalyticsEvent",
    "AnalyticsSummary",
    "EventType",
    "MetricType",
    "TimePeriod",
    "FileAttachment",
    "FileCategory",
    "SimpleFile",
    "UploadStatus",
]
