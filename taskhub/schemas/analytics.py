"""
Analytics Schemas - Event intake and summary output
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime


class EventCreate(BaseModel):
    """
    Schema for tracking an event. The type lists are checked by
    models.analytics.validate_event so the error body keeps its own shape.
    """
    event_name: Optional[str] = None
    event_type: Optional[str] = None
    source_service: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    occurred_at: Optional[datetime] = None  # Defaults to now


class SummaryResponse(BaseModel):
    id: int
    metric_name: str
    metric_type: str
    metric_value: float
    time_period: str
    user_id: Optional[int] = None
    calculated_at: datetime

    class Config:
        from_attributes = True
