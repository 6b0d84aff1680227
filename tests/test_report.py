import json
from datetime import datetime, timedelta, timezone

import pytest

from kperfkit.report import (
    HTTPError,
    ResponseError,
    ResponseErrorType,
    ResponseStats,
    RunnerGroupsReport,
    RunnerMetricReport,
)


def _error(**kwargs):
    base = dict(
        method="GET",
        url="/api/v1/pods",
        timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        duration=10.0,
        type=ResponseErrorType.HTTP,
        code=429,
    )
    base.update(kwargs)
    return ResponseError(**base)


def test_response_error_type_values():
    assert ResponseErrorType("http2-protocol") is ResponseErrorType.HTTP2_PROTOCOL
    assert ResponseErrorType.CONNECTION.value == "connection"


def test_response_error_to_dict():
    data = _error().to_dict()
    assert list(data) == ["method", "url", "timestamp", "duration", "type", "code", "message"]
    assert data["timestamp"] == "2024-01-02T03:04:05Z"
    assert data["type"] == "http"
    assert data["code"] == 429
    assert data["message"] == ""
    assert data["method"] == "GET"


def test_timestamp_fraction_and_offset():
    frac = _error(timestamp=datetime(2024, 1, 2, 3, 4, 5, 500000, tzinfo=timezone.utc))
    assert frac.to_dict()["timestamp"] == "2024-01-02T03:04:05.5Z"
    shifted = _error(timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=2))))
    assert shifted.to_dict()["timestamp"].endswith("+02:00")


def test_response_stats_defaults_are_independent():
    a = ResponseStats()
    b = ResponseStats()
    a.errors.append(_error())
    a.latencies_by_url["GET x"] = [0.1]
    assert b.errors == []
    assert b.latencies_by_url == {}
    assert b.total_received_bytes == 0


def test_report_omits_empty_fields():
    report = RunnerMetricReport(total=3, duration="1s", total_received_bytes=42)
    assert report.to_dict() == {"total": 3, "duration": "1s", "totalReceivedBytes": 42}


def test_report_full_to_dict():
    err = _error(type=ResponseErrorType.CONNECTION, code=0, message="EOF")
    report = RunnerMetricReport(
        total=2,
        duration="2s",
        errors=[err],
        error_stats={"connection/EOF": 1},
        total_received_bytes=7,
        latencies_by_url={"GET b": [0.2], "GET a": [0.1]},
        percentile_latencies=[(0.0, 0.1), (1.0, 0.2)],
        percentile_latencies_by_url={"GET a": [(0.0, 0.1)]},
    )
    data = report.to_dict()
    assert list(data) == [
        "total",
        "duration",
        "errors",
        "errorStats",
        "totalReceivedBytes",
        "latenciesByURL",
        "percentileLatencies",
        "percentileLatenciesByURL",
    ]
    assert data["errors"] == [err.to_dict()]
    assert data["errorStats"] == {"connection/EOF": 1}
    assert list(data["latenciesByURL"]) == ["GET a", "GET b"]
    assert data["percentileLatencies"] == [[0.0, 0.1], [1.0, 0.2]]
    assert data["percentileLatenciesByURL"] == {"GET a": [[0.0, 0.1]]}
    assert json.loads(json.dumps(data)) == data


def test_runner_groups_report_alias():
    report = RunnerGroupsReport(total=1, duration="0s")
    assert isinstance(report, RunnerMetricReport)
    assert report.to_dict()["total"] == 1


def test_http_error():
    err = HTTPError("runner group is not ready")
    assert str(err) == "runner group is not ready"
    assert err.to_dict() == {"error": "runner group is not ready"}
    with pytest.raises(HTTPError, match="not ready"):
        raise err