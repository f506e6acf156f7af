from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from core.config import Settings
from core.errors import MalformedUpstreamResponse, UpstreamRequestFailed
from core.timezone_utils import parse_date_yyyy_mm_dd, parse_time_hh_mm
from schemas.chart import BirthInput

logger = logging.getLogger("chart-proxy")


def build_upstream_payload(birth: BirthInput, offset_hours: float, house_system: str) -> dict[str, Any]:
    """Translate birth data into the AstrologyAPI request fields."""
    year, month, day = parse_date_yyyy_mm_dd(birth.date)
    hour, minute = parse_time_hh_mm(birth.time)
    return {
        "day": day,
        "month": month,
        "year": year,
        "hour": hour,
        "min": minute,
        "lat": birth.latitude,
        "lon": birth.longitude,
        "tzone": offset_hours,
        "house_type": house_system,
    }


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class AstrologyApiClient:
    """Thin client for one AstrologyAPI chart endpoint. Never retries."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    async def fetch_chart(self, payload: dict[str, Any]) -> Any:
        user_id, api_key = self.settings.require_credentials()
        endpoint = self.settings.endpoint_url

        logger.info("upstream_request", extra={"endpoint": endpoint, "payload": payload})

        if self.settings.form_encoded:
            body = {"data": {k: str(v) for k, v in payload.items()}}
        else:
            body = {"json": payload}

        try:
            async with httpx.AsyncClient(
                auth=(user_id, api_key),
                timeout=self.settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(endpoint, headers={"Accept": "application/json"}, **body)
        except httpx.TimeoutException as exc:
            logger.warning("upstream_timeout", extra={"endpoint": endpoint})
            raise UpstreamRequestFailed(
                f"AstrologyAPI did not answer within {self.settings.timeout_seconds:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("upstream_transport_error", extra={"endpoint": endpoint}, exc_info=True)
            raise UpstreamRequestFailed(f"AstrologyAPI request failed: {exc}") from exc

        if not response.is_success:
            data = _response_body(response)
            logger.warning(
                "upstream_http_error",
                extra={"endpoint": endpoint, "upstream_status": response.status_code},
            )
            raise UpstreamRequestFailed(
                "AstrologyAPI request failed",
                upstream_status=response.status_code,
                upstream_body=data,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedUpstreamResponse(
                "AstrologyAPI returned a body that is not JSON",
                upstream_status=response.status_code,
                upstream_body=response.text,
            ) from exc

        if isinstance(data, dict) and data.get("status") is False:
            logger.warning(
                "upstream_rejected",
                extra={"endpoint": endpoint, "upstream_status": response.status_code},
            )
            raise UpstreamRequestFailed(
                "AstrologyAPI rejected the request",
                upstream_status=response.status_code,
                upstream_body=data,
            )

        return data
