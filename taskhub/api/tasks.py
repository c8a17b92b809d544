"""
Tasks API - CRUD and status transitions for the caller's tasks (task service)
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from datetime import date, datetime, time, timedelta
from typing import Optional
import logging

from taskhub.database import get_db
from taskhub.schemas import TaskCreate, TaskUpdate, StatusUpdate, BulkUpdate, TaskResponse
from taskhub.models import Task, TaskStatus
from taskhub.models.task import (
    due_soon,
    overdue,
    search_text,
    statistics_for_user,
    status_value,
    tasks_for_user,
    transition_status,
)
from taskhub.clients.analytics_service import AnalyticsServiceClient
from taskhub.core.dependencies import AuthContext, require_user
from taskhub.core.exceptions import APIError, StatusError
from taskhub.utils.event_tracker import (
    log_task_create,
    log_task_delete,
    log_task_status_change,
    log_task_update,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def get_analytics_client() -> AnalyticsServiceClient:
    return AnalyticsServiceClient()


def task_json(task: Task) -> dict:
    return TaskResponse.model_validate(task).model_dump(mode="json")


def get_user_task(db: Session, auth: AuthContext, task_id: int) -> Task:
    """
    Fetch one of the caller's tasks.

    Raises:
        APIError 404: Missing and foreign tasks look the same
    """
    task = tasks_for_user(db, auth.user_id).filter(Task.id == task_id).first()
    if not task:
        logger.warning(f"⚠️  Task {task_id} not found for user {auth.user_id}")
        raise APIError(status.HTTP_404_NOT_FOUND, {"error": "Task not found"})
    return task


def status_error_response(error: StatusError) -> JSONResponse:
    if error.conflict:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"success": False, "error": error.message},
        )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "errors": [error.message]},
    )


def apply_filters(query, status_filter: Optional[str], priority: Optional[str], date_filter: Optional[str]):
    if status_filter:
        query = query.filter(Task.status == status_filter)
    if priority:
        query = query.filter(Task.priority == priority)
    if date_filter == "overdue":
        query = overdue(query)
    elif date_filter == "due_soon":
        query = due_soon(query)
    return query


@router.get("")
def get_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    date_filter: Optional[str] = Query(None, alias="filter", description="overdue or due_soon"),
    start_date: Optional[date] = Query(None, description="With status=completed: completed on/after"),
    end_date: Optional[date] = Query(None, description="With status=completed: completed on/before"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db)
):
    """
    List the caller's tasks, newest first.

    Returns:
        {success, tasks, total} - total counts every match, ignoring limit
    """
    logger.info(f"➡️  Get tasks request from user {auth.user_id}")

    query = apply_filters(tasks_for_user(db, auth.user_id), status_filter, priority, date_filter)

    if start_date and end_date and status_filter == TaskStatus.COMPLETED.value:
        query = query.filter(
            Task.completed_at >= datetime.combine(start_date, time.min),
            Task.completed_at < datetime.combine(end_date + timedelta(days=1), time.min),
        )

    total = query.count()
    query = query.order_by(Task.created_at.desc(), Task.id.desc())
    if limit:
        query = query.limit(limit)
    tasks = query.all()

    logger.info(f"✅ Returning {len(tasks)} tasks (total: {total})")
    return {"success": True, "tasks": [task_json(t) for t in tasks], "total": total}


@router.get("/search")
def search_tasks(
    q: Optional[str] = Query(None, description="Text searched in title and description"),
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    date_filter: Optional[str] = Query(None, alias="filter"),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db)
):
    query = tasks_for_user(db, auth.user_id)
    if q:
        query = search_text(query, q)
    query = apply_filters(query, status_filter, priority, date_filter)
    tasks = query.order_by(Task.created_at.desc(), Task.id.desc()).all()

    filters_applied = {"status": status_filter, "priority": priority, "filter": date_filter}
    return {
        "success": True,
        "tasks": [task_json(t) for t in tasks],
        "total": len(tasks),
        "query": q,
        "filters_applied": {k: v for k, v in filters_applied.items() if v is not None},
    }


@router.get("/statistics")
def get_statistics(
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "statistics": statistics_for_user(db, auth.user_id),
        "generated_at": datetime.utcnow().isoformat(),
    }


@router.get("/overdue")
def get_overdue_tasks(
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db)
):
    """Open tasks whose due date has passed, earliest first"""
    query = overdue(tasks_for_user(db, auth.user_id)).filter(Task.status != TaskStatus.COMPLETED.value)
    tasks = query.order_by(Task.due_date).all()
    return {
        "success": True,
        "tasks": [task_json(t) for t in tasks],
        "total": len(tasks),
        "current_date": date.today().isoformat(),
    }


@router.get("/upcoming")
def get_upcoming_tasks(
    days: int = Query(7, ge=0, le=365),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db)
):
    """Open tasks due between today and today + days"""
    today = date.today()
    end_date = today + timedelta(days=days)
    tasks = (
        tasks_for_user(db, auth.user_id)
        .filter(Task.due_date >= today, Task.due_date <= end_date)
        .filter(Task.status != TaskStatus.COMPLETED.value)
        .order_by(Task.due_date)
        .all()
    )
    return {
        "success": True,
        "tasks": [task_json(t) for t in tasks],
        "total": len(tasks),
        "date_range": {"from": today.isoformat(), "to": end_date.isoformat(), "days": days},
    }


@router.patch("/bulk_update")
def bulk_update_tasks(
    bulk_data: BulkUpdate,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db)
):
    """
    Apply the same changes to several tasks.

    Each task succeeds or fails on its own; a failed task keeps its previous
    state and its messages are reported under errors.

    Raises:
        400: task_ids or updates missing
        404: Any id missing or not owned by the caller
    """
    if not bulk_data.task_ids or bulk_data.updates is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "task_ids and updates parameters are required"},
        )

    task_ids = set(bulk_data.task_ids)
    tasks = tasks_for_user(db, auth.user_id).filter(Task.id.in_(task_ids)).order_by(Task.id).all()
    if len(tasks) != len(task_ids):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Some tasks not found or not owned by user"},
        )

    changes = bulk_data.updates.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)
    if "priority" in changes:
        changes["priority"] = status_value(changes["priority"])

    success_count = 0
    errors = []
    for task in tasks:
        for field, value in changes.items():
            setattr(task, field, value)

        if new_status and new_status != task.status:
            result = transition_status(db, task, new_status)
            if not result.success:
                db.rollback()
                errors.append({"task_id": task.id, "errors": [result.error.message]})
                continue
        else:
            try:
                db.commit()
            except StaleDataError:
                db.rollback()
                errors.append({"task_id": task.id, "errors": ["Task was modified by another request"]})
                continue
        success_count += 1

    updated = tasks_for_user(db, auth.user_id).filter(Task.id.in_(task_ids)).order_by(Task.id).all()
    logger.info(f"✅ Bulk update by user {auth.user_id}: {success_count} ok, {len(errors)} failed")
    return {
        "success": not errors,
        "success_count": success_count,
        "failure_count": len(errors),
        "total_requested": len(task_ids),
        "errors": errors,
        "updated_tasks": [task_json(t) for t in updated],
    }


@router.get("/{task_id}")
def get_task(
    task_id: int,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db)
):
    task = get_user_task(db, auth, task_id)
    return {"success": True, "task": task_json(task)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    task_data: TaskCreate,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
    analytics: AnalyticsServiceClient = Depends(get_analytics_client)
):
    """
    Create a task owned by the caller.

    Any initial status is accepted; creation is not a transition.
    """
    logger.info(f"➡️  Create task request from user {auth.user_id}: {task_data.title}")

    task = Task(
        title=task_data.title,
        description=task_data.description,
        priority=task_data.priority,
        status=task_data.status,
        due_date=task_data.due_date,
        user_id=auth.user_id,
    )

    try:
        db.add(task)
        db.commit()
        db.refresh(task)
    except Exception:
        db.rollback()
        raise

    logger.info(f"✅ Task created: {task.id}")
    log_task_create(analytics, auth, task)

    return {"success": True, "task": task_json(task), "message": "Task created successfully"}


@router.put("/{task_id}")
def update_task(
    task_id: int,
    task_data: TaskUpdate,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
    analytics: AnalyticsServiceClient = Depends(get_analytics_client)
):
    """
    Generic update. A status given here is a direct write, so the transition
    rules are enforced when the row is saved.

    Raises:
        404: Task not found
        409: Task changed by another request in the meantime
        422: Illegal status transition
    """
    task = get_user_task(db, auth, task_id)

    update_data = task_data.model_dump(exclude_unset=True)
    for field in ("status", "priority"):
        if field in update_data:
            update_data[field] = status_value(update_data[field])

    old_data = {field: getattr(task, field) for field in update_data}
    old_data = {k: (v.isoformat() if isinstance(v, date) else v) for k, v in old_data.items()}

    for field, value in update_data.items():
        setattr(task, field, value)

    try:
        db.commit()
    except StatusError as e:
        db.rollback()
        logger.warning(f"⚠️  Task {task_id}: {e.message}")
        return status_error_response(e)
    except StaleDataError:
        db.rollback()
        return status_error_response(StatusError(old_data.get("status"), update_data.get("status"), conflict=True))
    except Exception:
        db.rollback()
        raise

    db.refresh(task)
    logger.info(f"✅ Task updated: {task.id}")

    new_data = {k: (v.isoformat() if isinstance(v, date) else v) for k, v in update_data.items()}
    log_task_update(analytics, auth, task, old_data, new_data)

    return {"success": True, "task": task_json(task), "message": "Task updated successfully"}


@router.patch("/{task_id}/status")
def update_task_status(
    task_id: int,
    status_data: StatusUpdate,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
    analytics: AnalyticsServiceClient = Depends(get_analytics_client)
):
    """
    Move a task along the status graph.

    Raises:
        400: status missing
        404: Task not found
        409: Task changed by another request in the meantime
        422: "Cannot transition from X to Y"
    """
    task = get_user_task(db, auth, task_id)

    if not status_data.status:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Status parameter is required"},
        )

    old_status = task.status
    result = transition_status(db, task, status_data.status)
    if not result.success:
        return status_error_response(result.error)

    log_task_status_change(analytics, auth, task, old_status)
    return {"success": True, "task": task_json(task)}


@router.patch("/{task_id}/complete")
def complete_task(
    task_id: int,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
    analytics: AnalyticsServiceClient = Depends(get_analytics_client)
):
    task = get_user_task(db, auth, task_id)

    old_status = task.status
    result = transition_status(db, task, TaskStatus.COMPLETED)
    if not result.success:
        return status_error_response(result.error)

    log_task_status_change(analytics, auth, task, old_status)
    return {
        "success": True,
        "task": task_json(task),
        "message": "Task marked as completed successfully",
    }


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
    analytics: AnalyticsServiceClient = Depends(get_analytics_client)
):
    task = get_user_task(db, auth, task_id)

    try:
        db.delete(task)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"✅ Task deleted: {task_id}")
    log_task_delete(analytics, auth, task)

    return {"success": True, "message": "Task deleted successfully"}
