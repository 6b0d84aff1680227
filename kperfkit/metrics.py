"""Response measurements: latencies, failures, percentiles and error grouping."""

from __future__ import annotations

import asyncio
import http.client
import math
import threading
from datetime import datetime
from typing import Iterable, Iterator

from .report import ResponseError, ResponseErrorType, ResponseStats

_PERCENTILES = (0.0, 0.5, 0.90, 0.95, 0.99, 1.0)

_HTTP2_CLIENT_CONNECTION_LOST = "http2: client connection lost"
_TLS_HANDSHAKE_TIMEOUT = "net/http: TLS handshake timeout"

_HTTP2_CODE_NAMES = {
    0x0: "NO_ERROR",
    0x1: "PROTOCOL_ERROR",
    0x2: "INTERNAL_ERROR",
    0x3: "FLOW_CONTROL_ERROR",
    0x4: "SETTINGS_TIMEOUT",
    0x5: "STREAM_CLOSED",
    0x6: "FRAME_SIZE_ERROR",
    0x7: "REFUSED_STREAM",
    0x8: "CANCEL",
    0x9: "COMPRESSION_ERROR",
    0xA: "CONNECT_ERROR",
    0xB: "ENHANCE_YOUR_CALM",
    0xC: "INADEQUATE_SECURITY",
    0xD: "HTTP_1_1_REQUIRED",
}

# Status reasons in the order they are checked, with the code each stands for.
_REASON_CODES = (
    ("BadRequest", 400),
    ("Unauthorized", 401),
    ("Forbidden", 403),
    ("NotFound", 404),
    ("MethodNotAllowed", 405),
    ("NotAcceptable", 406),
    ("AlreadyExists", 409),
    ("Gone", 410),
    ("RequestEntityTooLarge", 413),
    ("UnsupportedMediaType", 415),
    ("Invalid", 422),
    ("TooManyRequests", 429),
    ("InternalError", 500),
    ("ServiceUnavailable", 503),
    ("Timeout", 504),
)
_KNOWN_REASONS = frozenset(reason for reason, _ in _REASON_CODES) | {
    "Conflict",
    "ServerTimeout",
    "Expired",
}

_TIMEOUT_ERRORS = (TimeoutError, asyncio.TimeoutError)
_UNEXPECTED_EOF_ERRORS = (asyncio.IncompleteReadError, http.client.IncompleteRead)


def _http2_code_name(code: int) -> str:
    return _HTTP2_CODE_NAMES.get(code, f"unknown error code 0x{code:x}")


class APIStatusError(Exception):
    """Error returned by the API server with an HTTP status code and reason."""

    def __init__(self, code: int, reason: str = "", message: str = "") -> None:
        super().__init__(message or reason or f"status code {code}")
        self.code = code
        self.reason = reason
        self.message = message


class HTTP2ConnectionError(Exception):
    """HTTP/2 connection-level error carrying an error code."""

    def __init__(self, code: int) -> None:
        super().__init__(f"connection error: {_http2_code_name(code)}")
        self.code = code


class HTTP2StreamError(Exception):
    """HTTP/2 stream-level error carrying a stream id and an error code."""

    def __init__(self, stream_id: int, code: int) -> None:
        super().__init__(f"stream error: stream ID {stream_id}; {_http2_code_name(code)}")
        self.stream_id = stream_id
        self.code = code


class HTTP2GoAwayError(Exception):
    """The server sent GOAWAY and closed the HTTP/2 connection."""

    def __init__(self, last_stream_id: int, code: int, debug_data: str = "") -> None:
        super().__init__(
            "http2 server sent GOAWAY and closed the connection; "
            f"LastStreamID={last_stream_id}, ErrCode={_http2_code_name(code)}, "
            f"debug={debug_data!r}"
        )
        self.last_stream_id = last_stream_id
        self.code = code
        self.debug_data = debug_data


def _chain(err: BaseException) -> Iterator[BaseException]:
    """Yield err and every exception it wraps through cause or context."""
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def _find(err: BaseException, kinds: type | tuple[type, ...]) -> BaseException | None:
    return next((item for item in _chain(err) if isinstance(item, kinds)), None)


def _mentions(err: BaseException, text: str) -> bool:
    return any(text in str(item) for item in _chain(err))


def _has_errno(err: BaseException, kind: type[OSError]) -> bool:
    return _find(err, kind) is not None


def code_from_http(err: BaseException | None) -> int:
    """Return the HTTP status code an API error stands for, or 0."""
    if err is None:
        return 0
    status = _find(err, APIStatusError)
    if status is None:
        return 0
    assert isinstance(status, APIStatusError)
    unknown_reason = status.reason not in _KNOWN_REASONS
    for reason, code in _REASON_CODES:
        if status.reason == reason or (unknown_reason and status.code == code):
            return code
    return int(status.code)


def http2_error_message(err: BaseException | None) -> str | None:
    """Return a message if err comes from the HTTP/2 layer, else None."""
    if err is None:
        return None
    conn_err = _find(err, HTTP2ConnectionError)
    if isinstance(conn_err, HTTP2ConnectionError):
        return _http2_code_name(conn_err.code)
    stream_err = _find(err, HTTP2StreamError)
    if isinstance(stream_err, HTTP2StreamError):
        return _http2_code_name(stream_err.code)
    goaway = _find(err, HTTP2GoAwayError)
    if isinstance(goaway, HTTP2GoAwayError):
        return (
            "http2: server sent GOAWAY and closed the connection; "
            f"ErrCode={_http2_code_name(goaway.code)}, debug={goaway.debug_data}"
        )
    if _mentions(err, _HTTP2_CLIENT_CONNECTION_LOST):
        return _HTTP2_CLIENT_CONNECTION_LOST
    return None


def connection_error_message(err: BaseException | None) -> str | None:
    """Return a message if err is a connection problem, else None."""
    if err is None:
        return None
    if _find(err, _TIMEOUT_ERRORS) is not None:
        return str(err) or "i/o timeout"
    if _has_errno(err, ConnectionRefusedError):
        return "connection refused"
    if _has_errno(err, ConnectionResetError):
        return "connection reset by peer"
    if _find(err, _UNEXPECTED_EOF_ERRORS) is not None:
        return "unexpected EOF"
    if _find(err, EOFError) is not None:
        return "EOF"
    if _mentions(err, _TLS_HANDSHAKE_TIMEOUT):
        return _TLS_HANDSHAKE_TIMEOUT
    return None


class ResponseMetric:
    """Thread-safe collector of latencies, failures and received bytes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: list[ResponseError] = []
        self._received_bytes = 0
        self._latencies_by_url: dict[str, list[float]] = {}

    def observe_latency(self, method: str, url: str, seconds: float) -> None:
        """Record the latency of one successful request."""
        key = f"{method} {url}"
        with self._lock:
            self._latencies_by_url.setdefault(key, []).append(seconds)

    def observe_failure(
        self,
        method: str,
        url: str,
        now: datetime,
        seconds: float,
        err: BaseException | None,
    ) -> None:
        """Record a failed request, classified by the kind of error."""
        if err is None:
            return
        record = ResponseError(method=method, url=url, timestamp=now, duration=seconds)
        code = code_from_http(err)
        http2_message = http2_error_message(err)
        conn_message = connection_error_message(err)
        if code != 0:
            record.type = ResponseErrorType.HTTP
            record.code = code
        elif http2_message is not None:
            record.type = ResponseErrorType.HTTP2_PROTOCOL
            record.message = http2_message
        elif conn_message is not None:
            record.type = ResponseErrorType.CONNECTION
            record.message = conn_message
        else:
            record.type = ResponseErrorType.UNKNOWN
            record.message = str(err)
        with self._lock:
            self._errors.append(record)

    def observe_received_bytes(self, count: int) -> None:
        """Add to the number of bytes read from the server."""
        with self._lock:
            self._received_bytes += count

    def gather(self) -> ResponseStats:
        """Return a snapshot of everything observed so far."""
        with self._lock:
            return ResponseStats(
                errors=list(self._errors),
                latencies_by_url={
                    url: list(values) for url, values in self._latencies_by_url.items()
                },
                total_received_bytes=self._received_bytes,
            )


def build_percentile_latencies(latencies: Iterable[float]) -> list[tuple[float, float]]:
    """Return (percentile, latency) pairs for p0, p50, p90, p95, p99 and p100."""
    ordered = sorted(latencies)
    if not ordered:
        return []
    count = len(ordered)
    result = []
    for percentile in _PERCENTILES:
        idx = math.ceil(count * percentile)
        if idx > 0:
            idx -= 1
        result.append((percentile, ordered[idx]))
    return result


def build_error_stats_group_by_type(errors: Iterable[ResponseError]) -> dict[str, int]:
    """Count errors by type and code, or by type and message."""
    stats: dict[str, int] = {}
    for err in errors:
        kind = ResponseErrorType(err.type)
        if kind is ResponseErrorType.HTTP:
            key = f"{kind.value}/{err.code}"
        else:
            key = f"{kind.value}/{err.message}"
        stats[key] = stats.get(key, 0) + 1
    return stats