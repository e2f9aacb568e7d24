"""
Dashboard snapshot and wire envelope models.

A DashboardSnapshot is derived on demand from the metrics store and is never
stored. The same shape travels over both transports:

Push (WebSocket):
    {"type": "initial" | "update", "data": DashboardSnapshot, "timestamp"?: str}

Pull (HTTP):
    {"success": true, "data": DashboardSnapshot, "timestamp": str}
    {"success": false, "error": str}

Field names on the wire are camelCase (lineChartData, totalEvents, ...);
Python attributes are snake_case.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class LinePoint(BaseModel):
    """One (timestamp, value) pair of the line series."""

    model_config = {"frozen": True}

    timestamp: str
    value: float


class CategoryTotal(BaseModel):
    """Sum of all values for one category of a bar or pie series."""

    model_config = {"frozen": True}

    category: str
    count: float


class DashboardSnapshot(BaseModel):
    """
    Full current dashboard state.

    Attributes:
        line_chart_data: Most recent line points, ascending by timestamp.
        bar_chart_data: One total per bar category, ordered by category.
        pie_chart_data: One total per pie category, ordered by category.
        total_events: Number of metric points ever stored.
        last_updated: When this snapshot was computed (ISO-8601).

    Example:
        >>> snapshot = DashboardSnapshot(total_events=0, last_updated="...")
        >>> snapshot.to_wire()["totalEvents"]
        0
    """

    model_config = {"frozen": True, "populate_by_name": True}

    line_chart_data: List[LinePoint] = Field(
        default_factory=list,
        alias="lineChartData",
    )
    bar_chart_data: List[CategoryTotal] = Field(
        default_factory=list,
        alias="barChartData",
    )
    pie_chart_data: List[CategoryTotal] = Field(
        default_factory=list,
        alias="pieChartData",
    )
    total_events: int = Field(
        ...,
        alias="totalEvents",
        ge=0,
    )
    last_updated: str = Field(
        ...,
        alias="lastUpdated",
    )

    def to_wire(self) -> Dict:
        """Serialize with camelCase keys, ready for JSON."""
        return self.model_dump(by_alias=True, mode="json")


class PushMessage(BaseModel):
    """Envelope of a message sent over the push transport."""

    model_config = {"frozen": True}

    type: Literal["initial", "update"]
    data: DashboardSnapshot
    timestamp: Optional[str] = None

    def to_wire(self) -> Dict:
        """Serialize, omitting an absent timestamp."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class PollResponse(BaseModel):
    """
    Body returned by the pull endpoint.

    Either success with data and timestamp, or failure with an error.
    """

    success: bool
    data: Optional[DashboardSnapshot] = None
    timestamp: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def validate_outcome(self) -> "PollResponse":
        """A successful response must carry data."""
        if self.success and self.data is None:
            raise ValueError("successful poll response must include data")
        return self


class StoreStats(BaseModel):
    """Aggregate counters describing the metrics store."""

    model_config = {"frozen": True, "populate_by_name": True}

    total_metrics: int = Field(..., alias="totalMetrics", ge=0)
    by_type: Dict[str, int] = Field(default_factory=dict, alias="byType")
    oldest_entry: Optional[str] = Field(default=None, alias="oldestEntry")
    newest_entry: Optional[str] = Field(default=None, alias="newestEntry")

    def to_wire(self) -> Dict:
        """Serialize with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")
