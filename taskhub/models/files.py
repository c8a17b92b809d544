"""
File Models - Attachment metadata, categories and simplified file records
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import Session, relationship
from datetime import datetime
from typing import Dict, List, Optional
import enum
import os
import uuid

from taskhub.database import Base

MEGABYTE = 1024 * 1024
MAX_FILE_SIZE = 10 * MEGABYTE  # Global limit, categories may lower it

# Content types rejected regardless of category
DANGEROUS_CONTENT_TYPES = frozenset({
    "application/x-executable",
    "application/x-msdownload",
    "application/octet-stream",
    "application/x-dosexec",
})

# Extension groups for SimpleFile.file_type
FILE_TYPES = {
    "document": ("pdf", "doc", "docx", "txt", "html"),
    "image": ("jpg", "jpeg", "png", "gif", "bmp"),
    "archive": ("zip", "rar", "7z", "tar", "gz"),
}

DEFAULT_CATEGORIES = [
    {
        "name": "documents",
        "description": "Document files",
        "allowed_file_types": [
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "text/plain",
        ],
        "max_file_size": 10 * MEGABYTE,
    },
    {
        "name": "images",
        "description": "Image files",
        "allowed_file_types": ["image/jpeg", "image/png", "image/gif", "image/webp"],
        "max_file_size": 5 * MEGABYTE,
    },
    {
        "name": "videos",
        "description": "Video files",
        "allowed_file_types": ["video/mp4", "video/avi", "video/mov", "video/webm"],
        "max_file_size": 100 * MEGABYTE,
    },
    {
        "name": "others",
        "description": "Everything else",
        "allowed_file_types": [],
        "max_file_size": 10 * MEGABYTE,
    },
]


class UploadStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class FileCategory(Base):
    """Category table - restricts content types and sizes of its files"""
    __tablename__ = "file_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)  # Stored stripped and lower-case
    description = Column(String(255), nullable=True)
    allowed_file_types = Column(JSON, nullable=False, default=list)  # Empty list allows everything
    max_file_size = Column(Integer, nullable=True)  # None means only the global limit applies
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    file_attachments = relationship("FileAttachment", back_populates="file_category")

    def allows_content_type(self, content_type: str) -> bool:
        if not self.allowed_file_types:
            return True
        return content_type in self.allowed_file_types

    def allows_file_size(self, file_size: int) -> bool:
        if self.max_file_size is None:
            return True
        return file_size <= self.max_file_size

    def __repr__(self):
        return f"<FileCategory {self.name}>"


class FileAttachment(Base):
    """
    Attachment table - metadata only, the bytes live in external storage.
    attachable_type/attachable_id point at an entity in any service.
    """
    __tablename__ = "file_attachments"

    id = Column(Integer, primary_key=True, index=True)
    original_filename = Column(String(255), nullable=False)
    storage_filename = Column(String(255), unique=True, nullable=False)
    file_url = Column(String(500), nullable=True)
    content_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)
    attachable_type = Column(String(50), nullable=False)
    attachable_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=True, index=True)
    file_category_id = Column(Integer, ForeignKey("file_categories.id", ondelete="SET NULL"), nullable=True)
    upload_status = Column(String(20), default=UploadStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    file_category = relationship("FileCategory", back_populates="file_attachments")

    def __init__(self, **kwargs):
        kwargs.setdefault("upload_status", UploadStatus.PENDING.value)
        if not kwargs.get("storage_filename") and kwargs.get("original_filename"):
            kwargs["storage_filename"] = generate_storage_filename(kwargs["original_filename"])
        super().__init__(**kwargs)

    @property
    def download_url(self) -> str:
        return self.file_url or f"/uploads/{self.storage_filename}"

    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    def human_file_size(self) -> str:
        size = self.file_size
        if size < 1024:
            return f"{size} bytes"
        if size < MEGABYTE:
            return f"{round(size / 1024.0, 1)} KB"
        if size < 1024 * MEGABYTE:
            return f"{round(size / float(MEGABYTE), 1)} MB"
        return f"{round(size / float(1024 * MEGABYTE), 1)} GB"

    def __repr__(self):
        return f"<FileAttachment {self.original_filename} ({self.upload_status})>"


class SimpleFile(Base):
    """Simplified file record: a URL owned by one user"""
    __tablename__ = "simple_files"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String(255), nullable=False)
    file_url = Column(String(500), nullable=False)
    file_type = Column(String(20), nullable=False, default="other")
    user_id = Column(Integer, nullable=False, index=True)
    file_category_id = Column(Integer, ForeignKey("file_categories.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    file_category = relationship("FileCategory")

    @property
    def category_name(self) -> str:
        return self.file_category.name if self.file_category else "Uncategorized"


def generate_storage_filename(original_filename: str) -> str:
    extension = os.path.splitext(original_filename)[1]
    return f"{uuid.uuid4()}_{int(datetime.utcnow().timestamp())}{extension}"


def determine_file_type(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return "other"
    extension = filename.rsplit(".", 1)[-1].lower()
    for file_type, extensions in FILE_TYPES.items():
        if extension in extensions:
            return file_type
    return "other"


def validate_attachment(
    original_filename: Optional[str],
    content_type: Optional[str],
    file_size: Optional[int],
    attachable_type: Optional[str],
    attachable_id: Optional[int],
    category: Optional[FileCategory] = None,
) -> Dict[str, List[str]]:
    """
    Check attachment metadata against the global and category limits.

    Returns:
        Field name -> messages; empty when the attachment is acceptable
    """
    errors: Dict[str, List[str]] = {}

    def add(field: str, message: str) -> None:
        errors.setdefault(field, []).append(message)

    if not original_filename:
        add("original_filename", "can't be blank")
    elif len(original_filename) > 255:
        add("original_filename", "is too long (maximum is 255 characters)")

    if not content_type:
        add("content_type", "can't be blank")
    else:
        if content_type in DANGEROUS_CONTENT_TYPES:
            add("content_type", "is not an allowed file type")
        if category is not None and not category.allows_content_type(content_type):
            add("content_type", f"is not allowed in category {category.name}")

    if file_size is None:
        add("file_size", "can't be blank")
    elif file_size <= 0:
        add("file_size", "must be greater than 0")
    else:
        if file_size > MAX_FILE_SIZE:
            add("file_size", "cannot exceed 10MB")
        if category is not None and not category.allows_file_size(file_size):
            limit_mb = round(category.max_file_size / float(MEGABYTE), 1)
            add("file_size", f"cannot exceed {limit_mb}MB in category {category.name}")

    if not attachable_type:
        add("attachable_type", "can't be blank")
    if attachable_id is None:
        add("attachable_id", "can't be blank")

    return errors


def find_category_by_name(db: Session, name: str) -> Optional[FileCategory]:
    return db.query(FileCategory).filter(func.lower(FileCategory.name) == name.strip().lower()).first()


def create_default_categories(db: Session) -> List[FileCategory]:
    """Insert the built-in categories that do not exist yet"""
    categories = []
    for attrs in DEFAULT_CATEGORIES:
        category = find_category_by_name(db, attrs["name"])
        if category is None:
            category = FileCategory(**attrs)
            db.add(category)
        categories.append(category)
    db.commit()
    return categories


def validate_category(db: Session, name: Optional[str], description: Optional[str] = None, exclude_id: Optional[int] = None) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    name = (name or "").strip()
    if not name:
        errors.setdefault("name", []).append("can't be blank")
    elif len(name) > 50:
        errors.setdefault("name", []).append("is too long (maximum is 50 characters)")
    else:
        existing = find_category_by_name(db, name)
        if existing is not None and existing.id != exclude_id:
            errors.setdefault("name", []).append("has already been taken")
    if description is not None and len(description) > 255:
        errors.setdefault("description", []).append("is too long (maximum is 255 characters)")
    return errors


def validate_simple_file(filename: Optional[str], file_url: Optional[str], user_id: Optional[int]) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    if not filename:
        errors.setdefault("filename", []).append("can't be blank")
    elif len(filename) > 255:
        errors.setdefault("filename", []).append("is too long (maximum is 255 characters)")
    if not file_url:
        errors.setdefault("file_url", []).append("can't be blank")
    elif len(file_url) > 500:
        errors.setdefault("file_url", []).append("is too long (maximum is 500 characters)")
    if user_id is None:
        errors.setdefault("user_id", []).append("can't be blank")
    return errors


def category_usage(db: Session, category: FileCategory) -> Dict[str, int]:
    """Number and total byte size of the attachments in a category"""
    files_count, total_size = (
        db.query(func.count(FileAttachment.id), func.coalesce(func.sum(FileAttachment.file_size), 0))
        .filter(FileAttachment.file_category_id == category.id)
        .one()
    )
    return {"files_count": files_count, "total_size": int(total_size)}


def attachment_statistics(db: Session, user_id: int) -> dict:
    user_files = db.query(FileAttachment).filter(FileAttachment.user_id == user_id)
    status_counts = dict(
        db.query(FileAttachment.upload_status, func.count(FileAttachment.id))
        .filter(FileAttachment.user_id == user_id)
        .group_by(FileAttachment.upload_status)
        .all()
    )
    total_size = (
        db.query(func.coalesce(func.sum(FileAttachment.file_size), 0))
        .filter(FileAttachment.user_id == user_id)
        .scalar()
    )
    return {
        "total_files": user_files.count(),
        "total_size": int(total_size),
        "upload_status_distribution": status_counts,
        "images": user_files.filter(FileAttachment.content_type.like("image/%")).count(),
    }


def simple_file_statistics(db: Session, user_id: int) -> dict:
    user_files = db.query(SimpleFile).filter(SimpleFile.user_id == user_id)
    type_counts = dict(
        db.query(SimpleFile.file_type, func.count(SimpleFile.id))
        .filter(SimpleFile.user_id == user_id)
        .group_by(SimpleFile.file_type)
        .all()
    )
    category_counts = dict(
        db.query(FileCategory.name, func.count(SimpleFile.id))
        .join(SimpleFile.file_category)
        .filter(SimpleFile.user_id == user_id)
        .group_by(FileCategory.name)
        .all()
    )
    return {
        "total_files": user_files.count(),
        "file_type_distribution": type_counts,
        "category_distribution": category_counts,
    }
