"""
Files API - Attachment metadata, categories and simple files (file service)

The file service sits behind the other services and checks no tokens.
Responses wrap payloads in {data: ...}; validation failures answer 422
{errors: {field: [messages]}}; missing records answer 404 {message}.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, List, Optional
import math
import logging

from taskhub.database import get_db
from taskhub.schemas import FileAttachmentCreate, FileCategoryCreate, FileCheck, SimpleFileCreate
from taskhub.models import FileAttachment, FileCategory, SimpleFile, UploadStatus
from taskhub.models.files import (
    MEGABYTE,
    attachment_statistics,
    category_usage,
    determine_file_type,
    simple_file_statistics,
    validate_attachment,
    validate_category,
    validate_simple_file,
)

logger = logging.getLogger(__name__)

attachments_router = APIRouter()
categories_router = APIRouter()
simple_files_router = APIRouter()


def render_success(data, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"data": data})


def render_errors(errors: Dict[str, List[str]], status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"errors": errors})


def render_not_found(message: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": message})


def paginate(query, page: int, per_page: int):
    total_count = query.count()
    items = query.limit(per_page).offset((page - 1) * per_page).all()
    pagination = {
        "current_page": page,
        "per_page": per_page,
        "total_count": total_count,
        "total_pages": math.ceil(total_count / per_page),
    }
    return items, pagination


def category_ref(category: Optional[FileCategory]) -> Optional[dict]:
    if category is None:
        return None
    return {"id": category.id, "name": category.name}


def max_size_mb(category: FileCategory) -> Optional[float]:
    if category.max_file_size is None:
        return None
    return round(category.max_file_size / float(MEGABYTE), 1)


def attachment_json(attachment: FileAttachment) -> dict:
    return {
        "id": attachment.id,
        "original_filename": attachment.original_filename,
        "storage_filename": attachment.storage_filename,
        "file_url": attachment.file_url,
        "download_url": attachment.download_url,
        "content_type": attachment.content_type,
        "file_size": attachment.file_size,
        "human_file_size": attachment.human_file_size(),
        "is_image": attachment.is_image(),
        "attachable_type": attachment.attachable_type,
        "attachable_id": attachment.attachable_id,
        "user_id": attachment.user_id,
        "upload_status": attachment.upload_status,
        "file_category_id": attachment.file_category_id,
        "file_category": category_ref(attachment.file_category),
        "created_at": attachment.created_at.isoformat(),
    }


def category_json(db: Session, category: FileCategory) -> dict:
    usage = category_usage(db, category)
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "allowed_file_types": category.allowed_file_types or [],
        "max_file_size": category.max_file_size,
        "max_file_size_mb": max_size_mb(category),
        "files_count": usage["files_count"],
        "total_size": usage["total_size"],
        "total_size_mb": round(usage["total_size"] / float(MEGABYTE), 2),
        "created_at": category.created_at.isoformat(),
    }


def simple_file_json(simple_file: SimpleFile) -> dict:
    return {
        "id": simple_file.id,
        "filename": simple_file.filename,
        "file_url": simple_file.file_url,
        "file_type": simple_file.file_type,
        "user_id": simple_file.user_id,
        "file_category_id": simple_file.file_category_id,
        "file_category": category_ref(simple_file.file_category),
        "category_name": simple_file.category_name,
        "created_at": simple_file.created_at.isoformat(),
    }


def load_category(db: Session, category_id: Optional[int], errors: Dict[str, List[str]]) -> Optional[FileCategory]:
    if category_id is None:
        return None
    category = db.query(FileCategory).filter(FileCategory.id == category_id).first()
    if category is None:
        errors.setdefault("file_category_id", []).append("does not exist")
    return category


# ---- File attachments ----

@attachments_router.get("")
def list_attachments(
    category_id: Optional[int] = Query(None),
    content_type: Optional[str] = Query(None, description="Substring of the content type"),
    file_type: Optional[str] = Query(None, description="Alias of content_type"),
    search: Optional[str] = Query(None),
    attachable_type: Optional[str] = Query(None),
    attachable_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1),
    db: Session = Depends(get_db)
):
    query = db.query(FileAttachment)

    if category_id is not None:
        query = query.filter(FileAttachment.file_category_id == category_id)
    type_filter = file_type or content_type
    if type_filter:
        query = query.filter(FileAttachment.content_type.like(f"%{type_filter}%"))
    if search:
        query = query.filter(FileAttachment.original_filename.ilike(f"%{search}%"))
    if attachable_type and attachable_id is not None:
        query = query.filter(
            FileAttachment.attachable_type == attachable_type,
            FileAttachment.attachable_id == attachable_id,
        )
    if user_id is not None:
        query = query.filter(FileAttachment.user_id == user_id)

    query = query.order_by(FileAttachment.created_at.desc(), FileAttachment.id.desc())
    items, pagination = paginate(query, page, min(per_page, 100))

    return render_success({"items": [attachment_json(a) for a in items], "pagination": pagination})


@attachments_router.get("/statistics")
def attachments_statistics(
    user_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    if user_id is None:
        return render_errors({"user_id": ["User ID is required"]}, status.HTTP_400_BAD_REQUEST)
    return render_success({
        "statistics": attachment_statistics(db, user_id),
        "generated_at": datetime.utcnow().isoformat(),
        "user_id": user_id,
    })


@attachments_router.get("/{attachment_id}")
def show_attachment(attachment_id: int, db: Session = Depends(get_db)):
    attachment = db.query(FileAttachment).filter(FileAttachment.id == attachment_id).first()
    if attachment is None:
        return render_not_found("File attachment not found")
    return render_success(attachment_json(attachment))


@attachments_router.post("", status_code=status.HTTP_201_CREATED)
def create_attachment(
    attachment_data: FileAttachmentCreate,
    db: Session = Depends(get_db)
):
    """
    Register metadata of an uploaded file.

    Raises:
        422 {errors: {field: [...]}}: size, content type or category rules violated
    """
    lookup_errors: Dict[str, List[str]] = {}
    category = load_category(db, attachment_data.file_category_id, lookup_errors)
    errors = validate_attachment(
        attachment_data.original_filename,
        attachment_data.content_type,
        attachment_data.file_size,
        attachment_data.attachable_type,
        attachment_data.attachable_id,
        category=category,
    )
    for field, messages in lookup_errors.items():
        errors.setdefault(field, []).extend(messages)
    if errors:
        logger.warning(f"⚠️  Attachment {attachment_data.original_filename} rejected: {errors}")
        return render_errors(errors)

    attachment = FileAttachment(**attachment_data.model_dump())
    db.add(attachment)
    db.commit()
    db.refresh(attachment)

    logger.info(f"✅ Attachment {attachment.id} created ({attachment.storage_filename})")
    return render_success(attachment_json(attachment), status.HTTP_201_CREATED)


@attachments_router.delete("/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attachment(attachment_id: int, db: Session = Depends(get_db)):
    attachment = db.query(FileAttachment).filter(FileAttachment.id == attachment_id).first()
    if attachment is None:
        return render_not_found("File attachment not found")
    db.delete(attachment)
    db.commit()
    logger.info(f"✅ Attachment {attachment_id} deleted")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _mark_upload(db: Session, attachment_id: int, upload_status: UploadStatus) -> JSONResponse:
    attachment = db.query(FileAttachment).filter(FileAttachment.id == attachment_id).first()
    if attachment is None:
        return render_not_found("File attachment not found")
    attachment.upload_status = upload_status.value
    db.commit()
    db.refresh(attachment)
    logger.info(f"✅ Attachment {attachment_id} marked {upload_status.value}")
    return render_success(attachment_json(attachment))


@attachments_router.post("/{attachment_id}/upload_complete")
def upload_complete(attachment_id: int, db: Session = Depends(get_db)):
    return _mark_upload(db, attachment_id, UploadStatus.COMPLETED)


@attachments_router.post("/{attachment_id}/upload_failed")
def upload_failed(attachment_id: int, db: Session = Depends(get_db)):
    return _mark_upload(db, attachment_id, UploadStatus.FAILED)


# ---- File categories ----

@categories_router.get("")
def list_categories(db: Session = Depends(get_db)):
    categories = db.query(FileCategory).order_by(FileCategory.name).all()
    return render_success([category_json(db, c) for c in categories])


@categories_router.get("/{category_id}")
def show_category(category_id: int, db: Session = Depends(get_db)):
    category = db.query(FileCategory).filter(FileCategory.id == category_id).first()
    if category is None:
        return render_not_found("File category not found")
    return render_success(category_json(db, category))


@categories_router.post("", status_code=status.HTTP_201_CREATED)
def create_category(
    category_data: FileCategoryCreate,
    db: Session = Depends(get_db)
):
    errors = validate_category(db, category_data.name, category_data.description)
    if errors:
        return render_errors(errors)

    category = FileCategory(
        name=category_data.name.strip().lower(),
        description=category_data.description,
        allowed_file_types=category_data.allowed_file_types or [],
        max_file_size=category_data.max_file_size,
    )
    db.add(category)
    db.commit()
    db.refresh(category)

    logger.info(f"✅ File category created: {category.name}")
    return render_success(category_json(db, category), status.HTTP_201_CREATED)


@categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    """Files of a deleted category stay, uncategorized"""
    category = db.query(FileCategory).filter(FileCategory.id == category_id).first()
    if category is None:
        return render_not_found("File category not found")

    db.query(FileAttachment).filter(FileAttachment.file_category_id == category_id).update(
        {FileAttachment.file_category_id: None}, synchronize_session=False
    )
    db.query(SimpleFile).filter(SimpleFile.file_category_id == category_id).update(
        {SimpleFile.file_category_id: None}, synchronize_session=False
    )
    db.delete(category)
    db.commit()
    logger.info(f"✅ File category {category_id} deleted")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@categories_router.get("/{category_id}/file_types")
def category_file_types(category_id: int, db: Session = Depends(get_db)):
    category = db.query(FileCategory).filter(FileCategory.id == category_id).first()
    if category is None:
        return render_not_found("File category not found")
    return render_success({
        "allowed_file_types": category.allowed_file_types or [],
        "max_file_size": category.max_file_size,
        "max_file_size_mb": max_size_mb(category),
    })


@categories_router.post("/{category_id}/validate_file")
def validate_file(
    category_id: int,
    file_check: FileCheck,
    db: Session = Depends(get_db)
):
    """Dry-run a content type and size against one category's rules"""
    category = db.query(FileCategory).filter(FileCategory.id == category_id).first()
    if category is None:
        return render_not_found("File category not found")

    errors = []
    if not category.allows_content_type(file_check.content_type):
        errors.append(f"Content type '{file_check.content_type}' is not allowed in this category")
    if not category.allows_file_size(file_check.file_size):
        errors.append(f"File size exceeds the maximum of {max_size_mb(category)}MB")

    return render_success({"valid": not errors, "errors": errors})


# ---- Simple files ----

@simple_files_router.get("")
def list_simple_files(
    user_id: Optional[int] = Query(None),
    category_id: Optional[int] = Query(None),
    file_type: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1),
    db: Session = Depends(get_db)
):
    query = db.query(SimpleFile)
    if user_id is not None:
        query = query.filter(SimpleFile.user_id == user_id)
    if category_id is not None:
        query = query.filter(SimpleFile.file_category_id == category_id)
    if file_type:
        query = query.filter(SimpleFile.file_type == file_type)
    if search:
        query = query.filter(SimpleFile.filename.ilike(f"%{search}%"))

    query = query.order_by(SimpleFile.created_at.desc(), SimpleFile.id.desc())
    files, pagination = paginate(query, page, min(per_page, 100))

    return render_success({"files": [simple_file_json(f) for f in files], "pagination": pagination})


@simple_files_router.get("/statistics")
def simple_files_statistics(
    user_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    if user_id is None:
        return render_errors({"user_id": ["User ID is required"]}, status.HTTP_400_BAD_REQUEST)
    return render_success({
        "statistics": simple_file_statistics(db, user_id),
        "generated_at": datetime.utcnow().isoformat(),
        "user_id": user_id,
    })


@simple_files_router.get("/{file_id}")
def show_simple_file(file_id: int, db: Session = Depends(get_db)):
    simple_file = db.query(SimpleFile).filter(SimpleFile.id == file_id).first()
    if simple_file is None:
        return render_not_found("File not found")
    return render_success(simple_file_json(simple_file))


@simple_files_router.post("", status_code=status.HTTP_201_CREATED)
def create_simple_file(
    file_data: SimpleFileCreate,
    db: Session = Depends(get_db)
):
    errors = validate_simple_file(file_data.filename, file_data.file_url, file_data.user_id)
    load_category(db, file_data.file_category_id, errors)
    if errors:
        return render_errors(errors)

    simple_file = SimpleFile(
        filename=file_data.filename,
        file_url=file_data.file_url,
        user_id=file_data.user_id,
        file_category_id=file_data.file_category_id,
        file_type=determine_file_type(file_data.filename),
    )
    db.add(simple_file)
    db.commit()
    db.refresh(simple_file)

    logger.info(f"✅ Simple file {simple_file.id} created for user {simple_file.user_id}")
    return render_success(simple_file_json(simple_file), status.HTTP_201_CREATED)


@simple_files_router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_simple_file(file_id: int, db: Session = Depends(get_db)):
    simple_file = db.query(SimpleFile).filter(SimpleFile.id == file_id).first()
    if simple_file is None:
        return render_not_found("File not found")
    db.delete(simple_file)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
