"""
Analytics Service Client - Dashboard metrics and event tracking
"""

from typing import Any, Dict, Optional

from taskhub.clients.base import BaseServiceClient
from taskhub.core.config import settings
from taskhub.core.result import ServiceResult


class AnalyticsServiceClient(BaseServiceClient):

    expects_object = True

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(base_url=base_url or settings.ANALYTICS_SERVICE_URL, **kwargs)

    def get_dashboard_summary(self, session_token: str) -> ServiceResult:
        return self.get("/api/v1/analytics/dashboard", headers=self.auth_headers(session_token))

    def get_completion_rate(self, session_token: str) -> ServiceResult:
        return self.get("/api/v1/analytics/tasks/completion-rate", headers=self.auth_headers(session_token))

    def get_completion_trend(self, session_token: str, days: int = 30) -> ServiceResult:
        return self.get(
            "/api/v1/analytics/completion-trend",
            headers=self.auth_headers(session_token),
            params={"days": days},
        )

    def get_priority_distribution(self, session_token: str) -> ServiceResult:
        return self.get("/api/v1/analytics/priority-distribution", headers=self.auth_headers(session_token))

    def track_event(
        self,
        session_token: str,
        event_name: str,
        event_type: str = "task",
        metadata: Optional[Dict[str, Any]] = None,
        source_service: str = "task-service",
    ) -> ServiceResult:
        return self.post(
            "/api/v1/analytics/events",
            headers=self.auth_headers(session_token),
            body={
                "event_name": event_name,
                "event_type": event_type,
                "source_service": source_service,
                "metadata": metadata or {},
            },
        )
