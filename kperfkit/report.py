"""Response errors, statistics and the runner's report."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ResponseErrorType(str, Enum):
    """Category of a failed response."""

    UNKNOWN = "unknown"
    HTTP = "http"
    HTTP2_PROTOCOL = "http2-protocol"
    CONNECTION = "connection"


def _rfc3339(moment: datetime) -> str:
    if moment.utcoffset() is None:
        moment = moment.astimezone()
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    total_minutes = int(offset.total_seconds()) // 60 if offset.total_seconds() >= 0 else -(
        int(-offset.total_seconds()) // 60
    )
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


@dataclass
class ResponseError:
    """Record of one failed request."""

    method: str
    url: str
    timestamp: datetime
    duration: float
    type: ResponseErrorType = ResponseErrorType.UNKNOWN
    code: int = 0
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form of this record."""
        return {
            "method": self.method,
            "url": self.url,
            "timestamp": _rfc3339(self.timestamp),
            "duration": self.duration,
            "type": ResponseErrorType(self.type).value,
            "code": self.code,
            "message": self.message,
        }


@dataclass
class ResponseStats:
    """Raw results gathered during a benchmark."""

    errors: list[ResponseError] = field(default_factory=list)
    latencies_by_url: dict[str, list[float]] = field(default_factory=dict)
    total_received_bytes: int = 0


def _pairs(values: list[tuple[float, float]]) -> list[list[float]]:
    return [[percentile, latency] for percentile, latency in values]


@dataclass
class RunnerMetricReport:
    """Summary of one benchmark run."""

    total: int = 0
    duration: str = ""
    errors: list[ResponseError] = field(default_factory=list)
    error_stats: dict[str, int] = field(default_factory=dict)
    total_received_bytes: int = 0
    latencies_by_url: dict[str, list[float]] = field(default_factory=dict)
    percentile_latencies: list[tuple[float, float]] = field(default_factory=list)
    percentile_latencies_by_url: dict[str, list[tuple[float, float]]] = field(
        default_factory=dict
    )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form, leaving out empty optional fields."""
        out: dict[str, Any] = {"total": self.total, "duration": self.duration}
        if self.errors:
            out["errors"] = [err.to_dict() for err in self.errors]
        if self.error_stats:
            out["errorStats"] = dict(sorted(self.error_stats.items()))
        out["totalReceivedBytes"] = self.total_received_bytes
        if self.latencies_by_url:
            out["latenciesByURL"] = {
                url: list(values) for url, values in sorted(self.latencies_by_url.items())
            }
        if self.percentile_latencies:
            out["percentileLatencies"] = _pairs(self.percentile_latencies)
        if self.percentile_latencies_by_url:
            out["percentileLatenciesByURL"] = {
                url: _pairs(values)
                for url, values in sorted(self.percentile_latencies_by_url.items())
            }
        return out


RunnerGroupsReport = RunnerMetricReport


class HTTPError(Exception):
    """Error carried in an HTTP response body."""

    def __init__(self, error_message: str) -> None:
        super().__init__(error_message)
        self.error_message = error_message

    def __str__(self) -> str:
        return self.error_message

    def to_dict(self) -> dict[str, str]:
        """Return the JSON-ready body of this error."""
        return {"error": self.error_message}