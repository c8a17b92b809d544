"""
Task Service Client - Calls to the task service on behalf of a signed-in user
"""

from datetime import date
from typing import Any, Dict, Iterable, Optional

from taskhub.clients.base import BaseServiceClient
from taskhub.core.config import settings
from taskhub.core.result import ServiceResult


class TaskServiceClient(BaseServiceClient):
    """
    Every call forwards the caller's session token as Bearer; the task
    service resolves the owner from it, so no user id is ever sent.
    """

    expects_object = True

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(base_url=base_url or settings.TASK_SERVICE_URL, **kwargs)

    def get_user_tasks(self, session_token: str, **filters) -> ServiceResult:
        """filters: status, priority, filter (overdue|due_soon), start_date, end_date, limit"""
        return self.get("/api/v1/tasks", headers=self.auth_headers(session_token), params=filters)

    def get_task(self, session_token: str, task_id: int) -> ServiceResult:
        return self.get(f"/api/v1/tasks/{task_id}", headers=self.auth_headers(session_token))

    def create_task(self, session_token: str, task_params: Dict[str, Any]) -> ServiceResult:
        return self.post("/api/v1/tasks", headers=self.auth_headers(session_token), body=task_params)

    def update_task(self, session_token: str, task_id: int, task_params: Dict[str, Any]) -> ServiceResult:
        return self.put(f"/api/v1/tasks/{task_id}", headers=self.auth_headers(session_token), body=task_params)

    def update_task_status(self, session_token: str, task_id: int, status: str) -> ServiceResult:
        return self.patch(
            f"/api/v1/tasks/{task_id}/status",
            headers=self.auth_headers(session_token),
            body={"status": status},
        )

    def complete_task(self, session_token: str, task_id: int) -> ServiceResult:
        return self.patch(f"/api/v1/tasks/{task_id}/complete", headers=self.auth_headers(session_token))

    def delete_task(self, session_token: str, task_id: int) -> ServiceResult:
        return self.delete(f"/api/v1/tasks/{task_id}", headers=self.auth_headers(session_token))

    def search_tasks(self, session_token: str, query: str, **filters) -> ServiceResult:
        params = dict(filters, q=query)
        return self.get("/api/v1/tasks/search", headers=self.auth_headers(session_token), params=params)

    def get_task_statistics(self, session_token: str) -> ServiceResult:
        return self.get("/api/v1/tasks/statistics", headers=self.auth_headers(session_token))

    def get_overdue_tasks(self, session_token: str) -> ServiceResult:
        return self.get("/api/v1/tasks/overdue", headers=self.auth_headers(session_token))

    def get_upcoming_tasks(self, session_token: str, days: int = 7) -> ServiceResult:
        return self.get(
            "/api/v1/tasks/upcoming",
            headers=self.auth_headers(session_token),
            params={"days": days},
        )

    def get_completed_tasks_in_range(self, session_token: str, start_date: date, end_date: date) -> ServiceResult:
        return self.get_user_tasks(
            session_token,
            status="completed",
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
        )

    def bulk_update_tasks(self, session_token: str, task_ids: Iterable[int], updates: Dict[str, Any]) -> ServiceResult:
        return self.patch(
            "/api/v1/tasks/bulk_update",
            headers=self.auth_headers(session_token),
            body={"task_ids": list(task_ids), "updates": updates},
        )
