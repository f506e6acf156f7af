from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


class ErrorKind(str, Enum):
    CLIENT_INPUT = "client_input"
    CONFIGURATION = "configuration"
    UPSTREAM_FAILED = "upstream_failed"


# Single translation point from error kind to transport status.
STATUS_BY_KIND = {
    ErrorKind.CLIENT_INPUT: 400,
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.UPSTREAM_FAILED: 502,
}

HTTP_TO_CHART_CODE = {
    400: "CHART-400",
    404: "CHART-404",
    405: "CHART-405",
    422: "CHART-422",
    500: "CHART-500",
    502: "CHART-502",
}


class ChartProxyError(Exception):
    """Base of every error the proxy surfaces to its callers."""

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def status_code(self) -> int:
        return http_status_for(self.kind)

    def details(self) -> dict[str, Any]:
        return {}


class ClientInputError(ChartProxyError):
    kind = ErrorKind.CLIENT_INPUT

    def __init__(self, field_name: str, message: str) -> None:
        super().__init__(message)
        self.field = field_name

    def details(self) -> dict[str, Any]:
        return {"field": self.field}


class InvalidTimezone(ClientInputError):
    def __init__(self, timezone_name: Any) -> None:
        super().__init__(
            "timezone",
            f"Invalid timezone: {timezone_name!r}. Use an IANA identifier like Europe/Amsterdam.",
        )
        self.timezone_name = timezone_name


class ConfigurationError(ChartProxyError):
    kind = ErrorKind.CONFIGURATION

    def __init__(self, variable: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"{variable} is not configured on the server.")
        self.variable = variable


class UpstreamRequestFailed(ChartProxyError):
    kind = ErrorKind.UPSTREAM_FAILED

    def __init__(
        self,
        message: str,
        *,
        upstream_status: Optional[int] = None,
        upstream_body: Any = None,
    ) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body

    def details(self) -> dict[str, Any]:
        return {"status": self.upstream_status, "response": self.upstream_body}


class MalformedUpstreamResponse(UpstreamRequestFailed):
    def __init__(self, message: str = "AstrologyAPI returned a body that is not a JSON object", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


def http_status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, 500)


@dataclass(frozen=True)
class ChartError:
    error_id: str
    error_code: str
    message: str
    retryable: bool
    field: Optional[str] = None
    details: dict[str, Any] = dataclass_field(default_factory=dict)

    def to_response(self) -> dict:
        payload = {
            "id": self.error_id,
            "code": self.error_code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.field:
            payload["field"] = self.field
        if self.details:
            payload["details"] = self.details
        return payload


def build_error(
    status_code: int,
    message: str,
    *,
    retryable: bool = False,
    field: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> ChartError:
    return ChartError(
        error_id=f"err_{uuid4().hex[:12]}",
        error_code=HTTP_TO_CHART_CODE.get(status_code, "CHART-500"),
        message=message,
        retryable=retryable,
        field=field,
        details=details or {},
    )


def error_from_exception(exc: ChartProxyError) -> ChartError:
    details = exc.details()
    field_name = details.pop("field", None)
    return build_error(exc.status_code, exc.message, field=field_name, details=details)
