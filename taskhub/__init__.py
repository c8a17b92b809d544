"""
TaskHub Package

Five cooperating services (user, task, analytics, file, frontend) built from
one code base. Each service is its own FastAPI application in taskhub.main.

Usage:
    from taskhub.models import Task
    from taskhub.core.config import settings
"""

__version__ = "1.0.0"  # Application version
