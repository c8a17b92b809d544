"""
File Schemas - Request bodies of the file service
"""

from pydantic import BaseModel, validator
from typing import List, Optional, Union
import json


class FileAttachmentCreate(BaseModel):
    original_filename: Optional[str] = None
    file_url: Optional[str] = None
    content_type: Optional[str] = None
    file_size: Optional[int] = None
    attachable_type: Optional[str] = None
    attachable_id: Optional[int] = None
    user_id: Optional[int] = None
    file_category_id: Optional[int] = None


class FileCategoryCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    allowed_file_types: Optional[Union[List[str], str]] = None
    max_file_size: Optional[int] = None

    @validator('allowed_file_types')
    def parse_allowed_file_types(cls, v):
        """Accept a list, a JSON array string or a comma-separated string"""
        if v is None or isinstance(v, list):
            return v
        try:
            parsed = json.loads(v)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [str(item) for item in parsed]
        return [item.strip() for item in v.split(",") if item.strip()]


class FileCheck(BaseModel):
    """Body of POST /file_categories/{id}/validate_file"""
    content_type: str
    file_size: int


class SimpleFileCreate(BaseModel):
    filename: Optional[str] = None
    file_url: Optional[str] = None
    user_id: Optional[int] = None
    file_category_id: Optional[int] = None
