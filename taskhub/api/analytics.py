"""
Analytics API - Event intake and task metrics (analytics service)

Task metrics are computed from the task service's own numbers, fetched with
the caller's token. When the task service cannot answer, metrics fall back
to zeros instead of failing the request.
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.orm import Session
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Optional
import logging

from taskhub.database import get_db
from taskhub.schemas import EventCreate, SummaryResponse
from taskhub.models import AnalyticsEvent, AnalyticsSummary, MetricType, TimePeriod
from taskhub.models.analytics import recent_window, validate_event, validate_summary
from taskhub.clients.task_service import TaskServiceClient
from taskhub.core.dependencies import AuthContext, require_api_user

logger = logging.getLogger(__name__)
router = APIRouter()

EMPTY_STATISTICS = {
    "total_tasks": 0,
    "completed_tasks": 0,
    "pending_tasks": 0,
    "in_progress_tasks": 0,
    "cancelled_tasks": 0,
    "overdue_tasks": 0,
    "completion_rate": 0,
    "priority_distribution": {"urgent": 0, "high": 0, "medium": 0, "low": 0},
    "status_distribution": {},
}


def get_task_client() -> TaskServiceClient:
    return TaskServiceClient()


def fetch_statistics(client: TaskServiceClient, auth: AuthContext) -> dict:
    """Caller's task statistics from the task service, or zeros if unavailable"""
    result = client.get_task_statistics(auth.token)
    if not result.success:
        logger.error(f"❌ Task statistics unavailable for user {auth.user_id}: {result.error.message}")
        return dict(EMPTY_STATISTICS)
    statistics = result.value.get("statistics")
    if not isinstance(statistics, dict):
        logger.error(f"❌ Task statistics for user {auth.user_id} missing from task service response")
        return dict(EMPTY_STATISTICS)
    merged = {**EMPTY_STATISTICS, **statistics}
    if not isinstance(merged["priority_distribution"], dict):
        merged["priority_distribution"] = dict(EMPTY_STATISTICS["priority_distribution"])
    return merged


def record_daily_summary(db: Session, user_id: int, metric_name: str, metric_type: MetricType, value: float) -> Optional[AnalyticsSummary]:
    """Keep one daily summary row per user and metric, overwriting today's value"""
    errors = validate_summary(metric_type.value, value, TimePeriod.DAILY.value)
    if errors:
        logger.warning(f"⚠️  Summary {metric_name} for user {user_id} not recorded: {errors}")
        return None

    start_of_day = datetime.combine(date.today(), time.min)
    summary = (
        db.query(AnalyticsSummary)
        .filter(
            AnalyticsSummary.metric_name == metric_name,
            AnalyticsSummary.time_period == TimePeriod.DAILY.value,
            AnalyticsSummary.user_id == user_id,
            AnalyticsSummary.calculated_at >= start_of_day,
        )
        .first()
    )
    if summary is None:
        summary = AnalyticsSummary(
            metric_name=metric_name,
            metric_type=metric_type.value,
            time_period=TimePeriod.DAILY.value,
            user_id=user_id,
        )
        db.add(summary)
    summary.metric_value = float(value)
    summary.calculated_at = datetime.utcnow()
    db.commit()
    return summary


def event_json(event: AnalyticsEvent) -> dict:
    data = event.to_metrics()
    data["id"] = event.id
    data["occurred_at"] = event.occurred_at.isoformat()
    return data


@router.post("/events", status_code=status.HTTP_201_CREATED)
def create_event(
    event_data: EventCreate,
    auth: AuthContext = Depends(require_api_user),
    db: Session = Depends(get_db)
):
    """
    Record one event for the caller.

    Raises:
        422 {status: error, error: validation_failed, details}: Unknown type or service
    """
    errors = validate_event(event_data.event_type, event_data.source_service, event_data.event_name)
    if errors:
        logger.warning(f"⚠️  Event rejected: {errors}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "status": "error",
                "error": "validation_failed",
                "message": "Event could not be recorded",
                "details": errors,
            },
        )

    event = AnalyticsEvent(
        event_name=event_data.event_name,
        event_type=event_data.event_type,
        source_service=event_data.source_service,
        user_id=auth.user_id,
        event_metadata=event_data.metadata,
        occurred_at=event_data.occurred_at or datetime.utcnow(),
    )
    db.add(event)
    db.commit()
    db.refresh(event)

    logger.info(f"✅ Event {event.event_name} recorded for user {auth.user_id}")
    return {
        "status": "success",
        "data": {"event_id": event.id},
        "message": "Event recorded successfully",
    }


@router.get("/events")
def get_events(
    event_type: Optional[str] = Query(None),
    source_service: Optional[str] = Query(None),
    days: Optional[int] = Query(None, ge=1, le=365, description="Only events of the last N days"),
    limit: int = Query(100, ge=1, le=500),
    auth: AuthContext = Depends(require_api_user),
    db: Session = Depends(get_db)
):
    query = db.query(AnalyticsEvent).filter(AnalyticsEvent.user_id == auth.user_id)
    if event_type:
        query = query.filter(AnalyticsEvent.event_type == event_type)
    if source_service:
        query = query.filter(AnalyticsEvent.source_service == source_service)
    if days:
        query = query.filter(AnalyticsEvent.occurred_at >= recent_window(days))

    total = query.count()
    events = query.order_by(AnalyticsEvent.occurred_at.desc(), AnalyticsEvent.id.desc()).limit(limit).all()
    return {"status": "success", "data": {"events": [event_json(e) for e in events], "total": total}}


@router.get("/events/metrics")
def get_event_metrics(
    days: Optional[int] = Query(None, ge=1, le=365),
    auth: AuthContext = Depends(require_api_user),
    db: Session = Depends(get_db)
):
    """Event counts by type and by source service for the caller"""
    base = db.query(AnalyticsEvent).filter(AnalyticsEvent.user_id == auth.user_id)
    if days:
        base = base.filter(AnalyticsEvent.occurred_at >= recent_window(days))

    by_type = dict(
        base.with_entities(AnalyticsEvent.event_type, func.count(AnalyticsEvent.id))
        .group_by(AnalyticsEvent.event_type)
        .all()
    )
    by_service = dict(
        base.with_entities(AnalyticsEvent.source_service, func.count(AnalyticsEvent.id))
        .group_by(AnalyticsEvent.source_service)
        .all()
    )
    return {
        "status": "success",
        "data": {
            "total_events": base.count(),
            "events_by_type": by_type,
            "events_by_service": by_service,
            "days": days,
        },
    }


@router.get("/dashboard")
def dashboard(
    auth: AuthContext = Depends(require_api_user),
    db: Session = Depends(get_db),
    task_client: TaskServiceClient = Depends(get_task_client)
):
    """
    Headline task numbers for the caller.

    A successful fetch also records today's completion_rate summary.
    """
    statistics = fetch_statistics(task_client, auth)
    priorities = statistics["priority_distribution"] or {}

    if statistics["total_tasks"]:
        record_daily_summary(
            db, auth.user_id, "completion_rate", MetricType.PERCENTAGE, statistics["completion_rate"]
        )

    return {
        "status": "success",
        "data": {
            "total_tasks": statistics["total_tasks"],
            "completed_tasks": statistics["completed_tasks"],
            "completion_rate": statistics["completion_rate"],
            "pending_tasks": statistics["pending_tasks"],
            "in_progress_tasks": statistics["in_progress_tasks"],
            "high_priority_tasks": priorities.get("high", 0) + priorities.get("urgent", 0),
            "overdue_tasks": statistics["overdue_tasks"],
            "period": "all_time",
            "generated_at": datetime.utcnow().isoformat(),
        },
    }


@router.get("/tasks/completion-rate")
def completion_rate(
    auth: AuthContext = Depends(require_api_user),
    task_client: TaskServiceClient = Depends(get_task_client)
):
    statistics = fetch_statistics(task_client, auth)
    return {
        "status": "success",
        "data": {
            "completion_rate": statistics["completion_rate"],
            "total_tasks": statistics["total_tasks"],
            "completed_tasks": statistics["completed_tasks"],
            "period": "all_time",
        },
    }


@router.get("/completion-trend")
def completion_trend(
    days: int = Query(30, ge=1, le=365),
    auth: AuthContext = Depends(require_api_user),
    task_client: TaskServiceClient = Depends(get_task_client)
):
    """Completed tasks per day over the last N days, oldest day first, zeros included"""
    end_date = date.today()
    start_date = end_date - timedelta(days=days - 1)

    per_day = Counter()
    result = task_client.get_completed_tasks_in_range(auth.token, start_date, end_date)
    if result.success:
        for task in result.value.get("tasks") or []:
            completed_at = task.get("completed_at") if isinstance(task, dict) else None
            if isinstance(completed_at, str):
                per_day[completed_at[:10]] += 1
    else:
        logger.error(f"❌ Completed tasks unavailable for user {auth.user_id}: {result.error.message}")

    trend_data = []
    for offset in range(days):
        day = (start_date + timedelta(days=offset)).isoformat()
        trend_data.append({"date": day, "completed_tasks": per_day[day]})

    return {
        "status": "success",
        "data": {
            "trend_data": trend_data,
            "period": f"{days}_days",
            "generated_at": datetime.utcnow().isoformat(),
        },
    }


@router.get("/priority-distribution")
def priority_distribution(
    auth: AuthContext = Depends(require_api_user),
    task_client: TaskServiceClient = Depends(get_task_client)
):
    statistics = fetch_statistics(task_client, auth)
    distribution = statistics["priority_distribution"] or {}
    return {
        "status": "success",
        "data": {
            "distribution": distribution,
            "total_tasks": sum(distribution.values()),
            "generated_at": datetime.utcnow().isoformat(),
        },
    }


@router.get("/summaries")
def get_summaries(
    metric_name: Optional[str] = Query(None),
    time_period: Optional[str] = Query(None),
    auth: AuthContext = Depends(require_api_user),
    db: Session = Depends(get_db)
):
    query = db.query(AnalyticsSummary).filter(AnalyticsSummary.user_id == auth.user_id)
    if metric_name:
        query = query.filter(AnalyticsSummary.metric_name == metric_name)
    if time_period:
        query = query.filter(AnalyticsSummary.time_period == time_period)

    summaries = query.order_by(AnalyticsSummary.calculated_at.desc()).all()
    return {
        "status": "success",
        "data": [
            {**SummaryResponse.model_validate(s).model_dump(mode="json"), "chart": s.to_chart_data()}
            for s in summaries
        ],
    }
