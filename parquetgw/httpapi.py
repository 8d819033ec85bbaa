"""Response building and options for the Prometheus-compatible HTTP query API."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from datetime import timedelta
from http import HTTPStatus
from typing import Any, Iterable, Sequence

API_PREFIX = "/api/v1"
ROUTES = (
    f"{API_PREFIX}/query",
    f"{API_PREFIX}/query_range",
    f"{API_PREFIX}/series",
    f"{API_PREFIX}/labels",
    f"{API_PREFIX}/label/:name/values",
)
METHODS = ("GET", "POST")

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class ErrorType(enum.Enum):
    """The kind of failure reported in an error response."""

    BAD_REQUEST = "bad_request"
    INTERNAL = "internal"
    CANCELED = "canceled"
    TIMEOUT = "timeout"
    UNIMPLEMENTED = "unimplemented"
    RESOURCE_EXHAUSTED = "resource_exhausted"


class ApiError(Exception):
    """A request failure with the error type it is reported as."""

    def __init__(self, error_type: ErrorType, message: str) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message


@dataclass
class QueryAPIOptions:
    """Defaults and limits of the query API; a quota of 0 means unlimited."""

    default_lookback: timedelta = timedelta(minutes=5)
    default_step: timedelta = timedelta(seconds=30)
    default_timeout: timedelta = timedelta(seconds=30)
    concurrent_query_quota: int | None = None
    select_chunk_bytes_quota: int = 0
    select_row_count_quota: int = 0
    select_chunk_partition_max_range: int = 0
    select_chunk_partition_max_gap: int = 0
    select_chunk_partition_max_concurrency: int = 0
    label_values_row_count_quota: int = 0
    label_names_row_count_quota: int = 0
    shard_count_quota: int = 0


_ERROR_STATUS = {
    ErrorType.UNIMPLEMENTED: HTTPStatus.NOT_FOUND,
    ErrorType.BAD_REQUEST: HTTPStatus.BAD_REQUEST,
    ErrorType.RESOURCE_EXHAUSTED: HTTPStatus.BAD_REQUEST,
    ErrorType.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
    ErrorType.CANCELED: HTTPStatus.REQUEST_TIMEOUT,
    ErrorType.TIMEOUT: HTTPStatus.REQUEST_TIMEOUT,
}


def error_status(error_type: ErrorType) -> HTTPStatus:
    """Return the HTTP status an error of this type is answered with."""
    return _ERROR_STATUS[ErrorType(error_type)]


def _encode(body: dict[str, Any]) -> bytes:
    text = json.dumps(body, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return (text + "\n").encode("utf-8")


def error_response(error: ApiError) -> tuple[HTTPStatus, bytes]:
    """Return the status and JSON body reporting error."""
    body = {
        "status": STATUS_ERROR,
        "errorType": error.error_type.value,
        "error": error.message,
    }
    return error_status(error.error_type), _encode(body)


def success_response(
    data: Any,
    warnings: Sequence[str] | None = None,
    infos: Sequence[str] | None = None,
) -> tuple[HTTPStatus, bytes]:
    """Return the status and JSON body of a successful answer; empty fields are left out."""
    body: dict[str, Any] = {"status": STATUS_SUCCESS}
    if data is not None:
        body["data"] = data
    if warnings:
        body["warnings"] = list(warnings)
    if infos:
        body["infos"] = list(infos)
    return HTTPStatus.OK, _encode(body)


def finalize_names(values: Iterable[str], limit: int) -> tuple[list[str], bool]:
    """Sort and deduplicate label names or values, cut to limit; report truncation."""
    result = sorted(set(values))
    if limit > 0 and len(result) > limit:
        return result[:limit], True
    return result, False