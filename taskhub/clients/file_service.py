"""
File Service Client - Attachment metadata, categories and simple files
"""

from typing import Any, Dict, Optional

from taskhub.clients.base import BaseServiceClient
from taskhub.core.config import settings
from taskhub.core.result import Ok, ServiceResult


class FileServiceClient(BaseServiceClient):
    """
    The file service is service-internal and does not check tokens; the
    token is still forwarded so every sibling call looks the same.
    """

    expects_object = True

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(base_url=base_url or settings.FILE_SERVICE_URL, **kwargs)

    def get_file_categories(self, session_token: Optional[str] = None) -> ServiceResult:
        return self.get("/api/v1/file_categories", headers=self.auth_headers(session_token))

    def get_user_files(self, user_id: int, session_token: Optional[str] = None, **filters) -> ServiceResult:
        """filters: category_id, content_type, search, page, per_page"""
        params = dict(filters, user_id=user_id)
        return self.get("/api/v1/file_attachments", headers=self.auth_headers(session_token), params=params)

    def create_file_attachment(self, file_data: Dict[str, Any], session_token: Optional[str] = None) -> ServiceResult:
        return self.post("/api/v1/file_attachments", headers=self.auth_headers(session_token), body=file_data)

    def get_file(self, file_id: int, session_token: Optional[str] = None) -> ServiceResult:
        return self.get(f"/api/v1/file_attachments/{file_id}", headers=self.auth_headers(session_token))

    def get_file_download_url(self, file_id: int, session_token: Optional[str] = None) -> ServiceResult:
        result = self.get_file(file_id, session_token)
        if not result.success:
            return result
        data = result.value.get("data") or {}
        return Ok({"success": True, "download_url": data.get("download_url") or data.get("file_url")})

    def delete_file(self, file_id: int, session_token: Optional[str] = None) -> ServiceResult:
        return self.delete(f"/api/v1/file_attachments/{file_id}", headers=self.auth_headers(session_token))

    def create_simple_file(self, file_data: Dict[str, Any], session_token: Optional[str] = None) -> ServiceResult:
        return self.post("/api/v1/simple_files", headers=self.auth_headers(session_token), body=file_data)

    def get_simple_files(self, user_id: int, session_token: Optional[str] = None, **filters) -> ServiceResult:
        params = dict(filters, user_id=user_id)
        return self.get("/api/v1/simple_files", headers=self.auth_headers(session_token), params=params)

    def delete_simple_file(self, file_id: int, session_token: Optional[str] = None) -> ServiceResult:
        return self.delete(f"/api/v1/simple_files/{file_id}", headers=self.auth_headers(session_token))

    def get_simple_file_stats(self, user_id: int, session_token: Optional[str] = None) -> ServiceResult:
        return self.get(
            "/api/v1/simple_files/statistics",
            headers=self.auth_headers(session_token),
            params={"user_id": user_id},
        )
