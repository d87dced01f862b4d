from __future__ import annotations
from pydantic import AfterValidator, BaseModel
from typing import Annotated, Optional, Dict, Any
from datetime import datetime

from app.common.utils import ensure_aware

# ERROR AND STATUS SCHEMAS

class ErrorResponse(BaseModel):
    """Standard error response"""
    error_code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime

class StatusResponse(BaseModel):
    """Generic status response"""
    status: str
    message: str
    data: Optional[Dict[str, Any]] = None

class ComponentStatus(BaseModel):
    status: str
    latency_ms: Optional[float] = None

class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    time_utc: datetime
    uptime_seconds: float
    version: str
    environment: str
    components: Dict[str, ComponentStatus]

# Naive datetimes from clients are treated as UTC.
UtcDateTime = Annotated[datetime, AfterValidator(ensure_aware)]
