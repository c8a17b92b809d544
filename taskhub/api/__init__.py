"""
API Package - Exports all API routers
"""

from taskhub.api import analytics, auth, files, frontend, health, tasks, users

__all__ = ["analytics", "auth", "files", "frontend", "health", "tasks", "users"]
