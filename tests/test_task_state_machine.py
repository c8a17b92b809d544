"""
Task status state machine tests.

Covers the transition graph itself, completed_at bookkeeping, the save-time
check on direct status writes, and optimistic locking between two
sessions that start from the same row version.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from taskhub.core.exceptions import StatusError
from taskhub.database import Base
from taskhub.models import Task, TaskStatus
from taskhub.models.task import (
    ALLOWED_TRANSITIONS,
    can_transition,
    statistics_for_user,
    transition_status,
)

pytestmark = pytest.mark.state_machine

LEGAL = [
    ("pending", "in_progress"),
    ("pending", "cancelled"),
    ("in_progress", "completed"),
    ("in_progress", "cancelled"),
    ("in_progress", "pending"),
    ("completed", "pending"),
    ("cancelled", "pending"),
]


def make_task(db, **kwargs):
    kwargs.setdefault("title", "Write report")
    kwargs.setdefault("user_id", 1)
    task = Task(**kwargs)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@pytest.mark.parametrize("current, target", LEGAL)
def test_legal_edges(current, target):
    assert can_transition(current, target)
    assert can_transition(TaskStatus(current), TaskStatus(target))


def test_every_other_pair_is_illegal():
    statuses = [s.value for s in TaskStatus]
    for current in statuses:
        for target in statuses:
            if (current, target) not in LEGAL:
                assert not can_transition(current, target), (current, target)


def test_self_loops_are_illegal():
    for status in ALLOWED_TRANSITIONS:
        assert not can_transition(status, status)


def test_unknown_statuses_are_illegal():
    assert not can_transition("archived", "pending")
    assert not can_transition("pending", "archived")


def test_new_task_defaults(db):
    task = make_task(db)

    assert task.status == "pending"
    assert task.priority == "medium"
    assert task.completed_at is None
    assert task.version_id == 1


def test_creation_accepts_any_initial_status(db):
    task = make_task(db, status=TaskStatus.COMPLETED)

    assert task.status == "completed"
    assert task.completed_at is not None


def test_transition_sets_and_clears_completed_at(db):
    # Arrange
    task = make_task(db)

    # Act / Assert
    assert transition_status(db, task, "in_progress").success
    assert task.completed_at is None

    assert transition_status(db, task, TaskStatus.COMPLETED).success
    assert task.status == "completed"
    assert task.completed_at is not None

    assert transition_status(db, task, "pending").success
    assert task.completed_at is None


def test_illegal_transition_returns_error_without_change(db):
    task = make_task(db)

    result = transition_status(db, task, "completed")

    assert not result.success
    assert isinstance(result.error, StatusError)
    assert result.error.message == "Cannot transition from pending to completed"
    assert not result.error.conflict
    db.expire_all()
    assert db.get(Task, task.id).status == "pending"


def test_completed_to_completed_is_rejected(db):
    task = make_task(db, status="completed")

    result = transition_status(db, task, "completed")

    assert result.error.message == "Cannot transition from completed to completed"


def test_direct_status_write_is_checked_on_save(db):
    # Arrange
    task = make_task(db)
    task.status = "completed"

    # Act
    with pytest.raises(StatusError) as excinfo:
        db.commit()
    db.rollback()

    # Assert
    assert excinfo.value.current == "pending"
    assert excinfo.value.attempted == "completed"
    assert db.get(Task, task.id).status == "pending"


def test_direct_legal_write_is_saved(db):
    task = make_task(db)

    task.status = "in_progress"
    db.commit()

    assert db.get(Task, task.id).status == "in_progress"


def test_non_status_changes_do_not_trigger_the_check(db):
    task = make_task(db, status="completed")

    task.title = "Renamed"
    db.commit()

    assert task.title == "Renamed"
    assert task.status == "completed"


def test_concurrent_transitions_second_one_conflicts(tmp_path):
    """Two sessions start from the same version; only the first commit wins"""
    # Arrange
    engine = create_engine(f"sqlite:///{tmp_path / 'tasks.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)

    with Session() as setup:
        task_id = make_task(setup).id

    first, second = Session(), Session()
    try:
        task_a = first.get(Task, task_id)
        task_b = second.get(Task, task_id)

        # Act
        result_a = transition_status(first, task_a, "in_progress")
        result_b = transition_status(second, task_b, "cancelled")

        # Assert
        assert result_a.success
        assert not result_b.success
        assert result_b.error.conflict
        assert result_b.error.message == "Task was modified by another request"

        with Session() as check:
            stored = check.get(Task, task_id)
            assert stored.status == "in_progress"
            assert stored.version_id == 2
    finally:
        first.close()
        second.close()
        engine.dispose()


def test_due_date_helpers():
    today = date(2024, 6, 10)
    overdue_task = Task(title="Late", user_id=1, due_date=today - timedelta(days=1))
    soon_task = Task(title="Soon", user_id=1, due_date=today + timedelta(days=3))
    later_task = Task(title="Later", user_id=1, due_date=today + timedelta(days=4))

    assert overdue_task.is_overdue(today)
    assert not overdue_task.is_due_soon(today)
    assert soon_task.is_due_soon(today)
    assert not later_task.is_due_soon(today)
    assert not Task(title="Undated", user_id=1).is_overdue(today)


def test_statistics_for_user(db):
    make_task(db, status="completed", priority="high")
    make_task(db, status="pending", priority="urgent")
    make_task(db, status="in_progress", due_date=date.today() - timedelta(days=2))
    make_task(db, user_id=2, status="completed")

    stats = statistics_for_user(db, 1)

    assert stats["total_tasks"] == 3
    assert stats["completed_tasks"] == 1
    assert stats["pending_tasks"] == 1
    assert stats["in_progress_tasks"] == 1
    assert stats["overdue_tasks"] == 1
    assert stats["completion_rate"] == 33.33
    assert stats["priority_distribution"] == {"urgent": 1, "high": 1, "medium": 1, "low": 0}
