"""
Task Model - Work items owned by the task service, with status transition rules
"""

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, event, inspect
from sqlalchemy.orm import Query, Session, column_property
from sqlalchemy.orm.exc import StaleDataError
from datetime import date, datetime, timedelta
from typing import Dict, FrozenSet, Optional, Union
import enum
import logging

from taskhub.core.exceptions import StatusError
from taskhub.core.result import Err, Ok, Result
from taskhub.database import Base

logger = logging.getLogger(__name__)

DUE_SOON_DAYS = 3


class TaskStatus(str, enum.Enum):
    """Task status enumeration - tracks task lifecycle"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, enum.Enum):
    """Task priority enumeration"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Directed edges of the status graph. Anything missing is illegal, including
# self-loops such as completed -> completed.
ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    TaskStatus.PENDING.value: frozenset({TaskStatus.IN_PROGRESS.value, TaskStatus.CANCELLED.value}),
    TaskStatus.IN_PROGRESS.value: frozenset({
        TaskStatus.COMPLETED.value,
        TaskStatus.CANCELLED.value,
        TaskStatus.PENDING.value,
    }),
    TaskStatus.COMPLETED.value: frozenset({TaskStatus.PENDING.value}),
    TaskStatus.CANCELLED.value: frozenset({TaskStatus.PENDING.value}),
}


def status_value(status: Union[str, TaskStatus, None]) -> Optional[str]:
    """Plain string form of a status, whatever the caller passed"""
    if isinstance(status, enum.Enum):
        return status.value
    return status


def can_transition(current: Union[str, TaskStatus], target: Union[str, TaskStatus]) -> bool:
    return status_value(target) in ALLOWED_TRANSITIONS.get(status_value(current), frozenset())


class Task(Base):
    """
    Task table - one row per work item.

    user_id references a user living in another service's database, so it is
    a plain integer with no foreign key. version_id guards against two
    requests changing the same row from the same starting state.
    """
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # active_history loads the previous status on assignment so the update
    # check always knows which state it is leaving
    status = column_property(
        Column(String(20), default=TaskStatus.PENDING.value, nullable=False, index=True),
        active_history=True,
    )
    priority = Column(String(20), default=TaskPriority.MEDIUM.value, nullable=False, index=True)

    user_id = Column(Integer, nullable=False, index=True)

    due_date = Column(Date, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def __init__(self, **kwargs):
        kwargs["status"] = status_value(kwargs.get("status")) or TaskStatus.PENDING.value
        kwargs["priority"] = status_value(kwargs.get("priority")) or TaskPriority.MEDIUM.value
        super().__init__(**kwargs)

    def can_transition_to(self, new_status: Union[str, TaskStatus]) -> bool:
        return can_transition(self.status, new_status)

    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.due_date is not None and self.due_date < today

    def is_due_soon(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return (
            self.due_date is not None
            and today <= self.due_date <= today + timedelta(days=DUE_SOON_DAYS)
        )

    def __repr__(self):
        return f"<Task {self.id}: {self.title} ({self.status})>"


def _sync_completed_at(task: Task) -> None:
    """completed_at is set exactly while the status is completed"""
    if task.status == TaskStatus.COMPLETED.value:
        if task.completed_at is None:
            task.completed_at = datetime.utcnow()
    else:
        task.completed_at = None


@event.listens_for(Task, "before_insert")
def _task_before_insert(mapper, connection, target: Task):
    # Creation is not a transition: any initial status is accepted
    _sync_completed_at(target)


@event.listens_for(Task, "before_update")
def _task_before_update(mapper, connection, target: Task):
    history = inspect(target).attrs.status.history
    if history.deleted and not getattr(target, "_programmatic_status_change", False):
        previous = history.deleted[0]
        if previous != target.status and not can_transition(previous, target.status):
            raise StatusError(previous, target.status)
    _sync_completed_at(target)


def transition_status(db: Session, task: Task, new_status: Union[str, TaskStatus]) -> Result:
    """
    Move a task to a new status if the status graph allows it.

    Returns:
        Ok(task) after the change is committed, or Err(StatusError) when the
        move is illegal or another request changed the task first. An Err
        leaves the stored row untouched.
    """
    current = task.status
    target = status_value(new_status)

    if not can_transition(current, target):
        logger.warning(f"⚠️  Task {task.id}: illegal transition {current} -> {target}")
        return Err(StatusError(current, target))

    task._programmatic_status_change = True  # Legality already checked above
    try:
        task.status = target
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(f"⚠️  Task {task.id}: concurrent modification during {current} -> {target}")
        return Err(StatusError(current, target, conflict=True))
    except Exception:
        db.rollback()
        raise
    finally:
        task._programmatic_status_change = False

    db.refresh(task)
    logger.info(f"✅ Task {task.id}: {current} -> {target}")
    return Ok(task)


def tasks_for_user(db: Session, user_id: int) -> Query:
    return db.query(Task).filter(Task.user_id == user_id)


def overdue(query: Query, today: Optional[date] = None) -> Query:
    today = today or date.today()
    return query.filter(Task.due_date.isnot(None), Task.due_date < today)


def due_soon(query: Query, today: Optional[date] = None) -> Query:
    today = today or date.today()
    return query.filter(
        Task.due_date.isnot(None),
        Task.due_date >= today,
        Task.due_date <= today + timedelta(days=DUE_SOON_DAYS),
    )


def search_text(query: Query, text: str) -> Query:
    pattern = f"%{text}%"
    return query.filter(Task.title.ilike(pattern) | Task.description.ilike(pattern))


def statistics_for_user(db: Session, user_id: int) -> dict:
    """Counts by status and priority plus completion rate for one user"""
    user_tasks = tasks_for_user(db, user_id)

    status_counts = {s.value: user_tasks.filter(Task.status == s.value).count() for s in TaskStatus}
    priority_counts = {
        p.value: user_tasks.filter(Task.priority == p.value).count()
        for p in reversed(list(TaskPriority))
    }
    total = user_tasks.count()
    completed = status_counts[TaskStatus.COMPLETED.value]
    overdue_count = overdue(user_tasks).filter(Task.status != TaskStatus.COMPLETED.value).count()

    return {
        "total_tasks": total,
        "completed_tasks": completed,
        "pending_tasks": status_counts[TaskStatus.PENDING.value],
        "in_progress_tasks": status_counts[TaskStatus.IN_PROGRESS.value],
        "cancelled_tasks": status_counts[TaskStatus.CANCELLED.value],
        "overdue_tasks": overdue_count,
        "completion_rate": round(completed / total * 100, 2) if total else 0,
        "priority_distribution": priority_counts,
        "status_distribution": status_counts,
    }
