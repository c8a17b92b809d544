"""
Clients Package - Outbound HTTP clients for sibling services
"""

from taskhub.clients.base import BaseServiceClient, RetryPolicy, check_service_health
from taskhub.clients.user_service import UserServiceClient
from taskhub.clients.task_service import TaskServiceClient
from taskhub.clients.analytics_service import AnalyticsServiceClient
from taskhub.clients.file_service import FileServiceClient

__all__ = [
    "BaseServiceClient",
    "RetryPolicy",
    "check_service_health",
    "UserServiceClient",
    "TaskServiceClient",
    "AnalyticsServiceClient",
    "FileServiceClient",
]
