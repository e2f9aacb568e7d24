from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from livesync.models.health import SyncStatus, TransportState
from livesync.models.metrics import MetricPoint, MetricType, format_timestamp, parse_timestamp
from livesync.models.snapshot import PollResponse, PushMessage


def test_categorical_points_require_category():
    with pytest.raises(ValidationError):
        MetricPoint(timestamp=datetime.now(timezone.utc), metric_type="bar", value=1)


def test_line_points_reject_category():
    with pytest.raises(ValidationError):
        MetricPoint(
            timestamp=datetime.now(timezone.utc),
            metric_type="line",
            category="Category A",
            value=1,
        )


def test_non_finite_values_rejected():
    with pytest.raises(ValidationError):
        MetricPoint(timestamp=datetime.now(timezone.utc), metric_type="line", value=float("nan"))


def test_camel_case_alias_accepted():
    point = MetricPoint.model_validate(
        {"timestamp": "2025-01-26T12:00:00Z", "metricType": "pie", "category": "X", "value": 3}
    )
    assert point.metric_type == MetricType.PIE
    assert point.timestamp.tzinfo is not None


def test_timestamps_normalized_to_utc():
    local = datetime(2025, 1, 26, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    point = MetricPoint(timestamp=local, metric_type="line", value=1)
    assert point.timestamp_str == "2025-01-26T12:00:00.000000Z"


def test_timestamp_format_round_trips_and_sorts():
    earlier = datetime(2025, 1, 26, 9, 59, 59, 999999, tzinfo=timezone.utc)
    later = datetime(2025, 1, 26, 10, 0, 0, tzinfo=timezone.utc)
    assert format_timestamp(earlier) < format_timestamp(later)
    assert parse_timestamp(format_timestamp(later)) == later


def test_initial_push_message_omits_timestamp(make_snapshot):
    wire = PushMessage(type="initial", data=make_snapshot(5)).to_wire()
    assert "timestamp" not in wire
    assert wire["data"]["totalEvents"] == 5


def test_successful_poll_response_requires_data():
    with pytest.raises(ValidationError):
        PollResponse(success=True)
    assert PollResponse(success=False, error="down").error == "down"


def test_state_helpers():
    assert TransportState.RECONNECT_WAIT.is_active
    assert not TransportState.FAILED.is_active
    assert SyncStatus.POLLING.is_healthy
    assert not SyncStatus.RECONNECTING.is_healthy
