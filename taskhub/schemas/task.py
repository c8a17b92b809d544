"""
Task Schemas - Pydantic models for task operations
"""

from pydantic import BaseModel, validator
from typing import Optional, List
from datetime import date, datetime

from taskhub.models.task import TaskStatus, TaskPriority

# DO NOT import from taskhub.schemas here - causes circular import


def _clean_title(v):
    if not v or not v.strip():
        raise ValueError("Title can't be blank")
    if len(v.strip()) > 255:
        raise ValueError('Title is too long (maximum is 255 characters)')
    return v.strip()


def _clean_description(v):
    if v is None:
        return None
    if len(v) > 2000:
        raise ValueError("Description is too long (maximum is 2000 characters)")
    return v.strip() or None


class TaskCreate(BaseModel):
    """Schema for creating new task - owner comes from the verified session"""
    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: Optional[TaskStatus] = None  # Initial status; creation is not a transition
    due_date: Optional[date] = None

    @validator('title')
    def validate_title(cls, v):
        return _clean_title(v)

    @validator('description')
    def validate_description(cls, v):
        return _clean_description(v)


class TaskUpdate(BaseModel):
    """
    Schema for the generic update - all fields optional.
    A status here is still checked against the transition rules on save.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None

    @validator('title')
    def validate_title(cls, v):
        """Same validation as TaskCreate"""
        if v is None:
            raise ValueError("Title can't be blank")  # Column is NOT NULL; omit the field to keep it
        return _clean_title(v)

    @validator('description')
    def validate_description(cls, v):
        return _clean_description(v)

    @validator('status')
    def validate_status(cls, v):
        if v is None:
            raise ValueError("Status can't be blank")
        return v

    @validator('priority')
    def validate_priority(cls, v):
        if v is None:
            raise ValueError("Priority can't be blank")
        return v


class StatusUpdate(BaseModel):
    """Body of PATCH /tasks/{id}/status; a missing status is answered with 400"""
    status: Optional[str] = None


class BulkChanges(BaseModel):
    status: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    description: Optional[str] = None

    @validator('priority')
    def validate_priority(cls, v):
        if v is None:
            raise ValueError("Priority can't be blank")
        return v

    @validator('description')
    def validate_description(cls, v):
        return _clean_description(v)


class BulkUpdate(BaseModel):
    task_ids: Optional[List[int]] = None
    updates: Optional[BulkChanges] = None


class TaskResponse(BaseModel):
    """Schema for task data in responses"""
    id: int
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    user_id: int
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True  # Pydantic V2 - replaces orm_mode
