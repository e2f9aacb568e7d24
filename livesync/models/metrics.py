"""
Metric point data model.

A MetricPoint is one immutable row in the metrics store. Points are never
updated once written; they are only removed by retention cleanup.

Models:
    MetricType: Chart family a point belongs to (line, bar, pie)
    MetricPoint: A single stored measurement
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# Fixed width keeps lexicographic order equal to chronological order.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """
    Render a datetime as a fixed-width UTC ISO-8601 string.

    Naive datetimes are assumed to already be UTC.

    Args:
        value: Datetime to format.

    Returns:
        str: e.g. "2025-01-26T12:34:56.789000Z".
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 string into an aware UTC datetime.

    Args:
        value: ISO-8601 timestamp; a trailing "Z" is accepted.

    Returns:
        datetime: Aware UTC datetime.

    Raises:
        ValueError: If the string is not ISO-8601.
    """
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class MetricType(str, Enum):
    """
    Chart family of a metric point.

    Attributes:
        LINE: Time series value, no category.
        BAR: Categorical value, summed per category.
        PIE: Categorical value, summed per category.
    """

    LINE = "line"
    BAR = "bar"
    PIE = "pie"

    @property
    def is_categorical(self) -> bool:
        """Check if points of this type carry a category."""
        return self in (MetricType.BAR, MetricType.PIE)


class MetricPoint(BaseModel):
    """
    A single stored measurement.

    Attributes:
        id: Store-assigned identifier, None until written.
        timestamp: When the measurement applies (UTC).
        metric_type: Chart family.
        category: Category name, present iff metric_type is bar or pie.
        value: Measured value or delta.
        metadata: Optional opaque string.

    Example:
        >>> point = MetricPoint(
        ...     timestamp=utc_now(),
        ...     metric_type=MetricType.BAR,
        ...     category="Category A",
        ...     value=12.5,
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}

    id: Optional[int] = Field(
        default=None,
        description="Store-assigned identifier",
        ge=1,
    )
    timestamp: datetime = Field(
        ...,
        description="Measurement time (UTC)",
    )
    metric_type: MetricType = Field(
        ...,
        alias="metricType",
        description="Chart family (line, bar, pie)",
    )
    category: Optional[str] = Field(
        default=None,
        description="Category for bar/pie points",
        min_length=1,
        max_length=200,
    )
    value: float = Field(
        ...,
        description="Measured value",
        allow_inf_nan=False,
    )
    metadata: Optional[str] = Field(
        default=None,
        description="Opaque caller-supplied payload",
    )

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Store every timestamp as aware UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def validate_category(self) -> "MetricPoint":
        """Require a category for bar/pie points and forbid it for line points."""
        if self.metric_type.is_categorical and self.category is None:
            raise ValueError(f"{self.metric_type.value} points require a category")
        if not self.metric_type.is_categorical and self.category is not None:
            raise ValueError("line points must not carry a category")
        return self

    @property
    def timestamp_str(self) -> str:
        """Fixed-width storage representation of the timestamp."""
        return format_timestamp(self.timestamp)
