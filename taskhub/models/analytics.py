"""
Analytics Models - Append-only event records and computed metric summaries
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, JSON
from datetime import datetime, timedelta
from typing import List, Optional
import calendar
import enum

from taskhub.database import Base


class EventType(str, enum.Enum):
    TASK = "task"
    USER = "user"
    SYSTEM = "system"


class MetricType(str, enum.Enum):
    COUNT = "count"
    AVERAGE = "average"
    SUM = "sum"
    PERCENTAGE = "percentage"


class TimePeriod(str, enum.Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


SOURCE_SERVICES = ("user-service", "task-service", "analytics-service", "file-service")


class AnalyticsEvent(Base):
    """
    Event table - append-only, never updated after insert.
    user_id belongs to the user service and is not a foreign key.
    """
    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True, index=True)
    event_name = Column(String(100), nullable=False)
    event_type = Column(String(20), nullable=False, index=True)
    source_service = Column(String(50), nullable=False)
    user_id = Column(Integer, nullable=True, index=True)
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)
    occurred_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def to_metrics(self) -> dict:
        return {
            "name": self.event_name,
            "type": self.event_type,
            "service": self.source_service,
            "timestamp": calendar.timegm(self.occurred_at.utctimetuple()),
            "metadata": self.event_metadata,
            "user_id": self.user_id,
        }

    def __repr__(self):
        return f"<AnalyticsEvent {self.event_name} ({self.event_type}) at {self.occurred_at}>"


class AnalyticsSummary(Base):
    """Summary table - one computed metric value per period"""
    __tablename__ = "analytics_summaries"

    id = Column(Integer, primary_key=True, index=True)
    metric_name = Column(String(100), nullable=False, index=True)
    metric_type = Column(String(20), nullable=False)
    metric_value = Column(Float, nullable=False)
    time_period = Column(String(20), nullable=False)
    user_id = Column(Integer, nullable=True, index=True)
    calculated_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def formatted_value(self) -> str:
        if self.metric_type == MetricType.PERCENTAGE.value:
            return f"{self.metric_value}%"
        if self.metric_type in (MetricType.COUNT.value, MetricType.SUM.value):
            return str(int(self.metric_value))
        if self.metric_type == MetricType.AVERAGE.value:
            return f"{self.metric_value:.2f}"
        return str(self.metric_value)

    def to_chart_data(self) -> dict:
        return {
            "name": self.metric_name,
            "value": float(self.metric_value),
            "period": self.time_period,
            "date": self.calculated_at.date().isoformat(),
            "formatted_value": self.formatted_value(),
        }


def validate_event(event_type: Optional[str], source_service: Optional[str], event_name: Optional[str]) -> List[str]:
    errors = []
    if not event_name:
        errors.append("Event name can't be blank")
    if event_type not in {t.value for t in EventType}:
        errors.append("Event type is not included in the list")
    if source_service not in SOURCE_SERVICES:
        errors.append("Source service is not included in the list")
    return errors


def validate_summary(metric_type: str, metric_value: float, time_period: str) -> List[str]:
    errors = []
    if metric_type not in {t.value for t in MetricType}:
        errors.append("Metric type is not included in the list")
    if metric_value is None or metric_value < 0:
        errors.append("Metric value must be greater than or equal to 0")
    if time_period not in {p.value for p in TimePeriod}:
        errors.append("Time period is not included in the list")
    return errors


def recent_window(days: int) -> datetime:
    return datetime.utcnow() - timedelta(days=days)
