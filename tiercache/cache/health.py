"""
TierCache - Health Reporting

Health models and the rule that folds per-tier status into an overall one.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Tier and overall health states."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    DISABLED = "disabled"


class TierHealth(BaseModel):
    """Health of a single tier."""

    status: HealthStatus
    details: dict[str, Any] = Field(default_factory=dict)


class HealthReport(BaseModel):
    """Overall cache health with per-tier detail."""

    status: HealthStatus
    l1: TierHealth
    l2: TierHealth


def overall_status(l1: HealthStatus, l2: HealthStatus) -> HealthStatus:
    """
    Combine tier statuses.

    - healthy: every enabled tier is healthy (and at least one is enabled)
    - degraded: L1 is healthy but an enabled L2 is not
    - unhealthy: anything else
    """
    enabled = [status for status in (l1, l2) if status is not HealthStatus.DISABLED]
    if enabled and all(status is HealthStatus.HEALTHY for status in enabled):
        return HealthStatus.HEALTHY
    if l1 is HealthStatus.HEALTHY:
        return HealthStatus.DEGRADED
    return HealthStatus.UNHEALTHY
