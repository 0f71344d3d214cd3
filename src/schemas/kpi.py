"""KPI Pydantic schemas."""

from enum import Enum

from pydantic import BaseModel, Field


class KpiMode(str, Enum):
    """How activities are classified into dials, connects and closes."""

    TYPE = "type"
    OUTCOME = "outcome"


class KpiPreset(str, Enum):
    TODAY = "today"
    WEEK = "week"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"


class KpiResponse(BaseModel):
    """Schema for KPI responses."""

    dials: int = 0
    connects: int = 0
    closes: int = 0
    revenue: float = 0
    conversion_rate: str = Field(
        default="0",
        serialization_alias="conversionRate",
        description="Closes per dial as a percentage with one decimal, or '0'",
    )
