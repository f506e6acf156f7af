from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

import httpx

from core.cache import ChartStore, get_fresh
from core.config import DEFAULT_HOUSE_SYSTEM, Settings
from core.timezone_utils import resolve_offset_hours
from schemas.chart import BirthInput, NormalizedChart
from services.normalizer import normalize
from services.upstream import AstrologyApiClient, build_upstream_payload

logger = logging.getLogger("chart-proxy")

COORDINATE_DECIMALS = 4


@dataclass(frozen=True)
class ChartResult:
    chart: NormalizedChart
    source: Literal["cache", "upstream"]
    tzone: float
    timezone: Optional[str]
    house_system: str
    cache_key: str


def build_cache_key(birth: BirthInput, timezone_name: Optional[str], house_system: str) -> str:
    """Key on the birth fields, with coordinates quantized to roughly 11 m."""
    offset = "-" if birth.tz_offset is None else f"{birth.tz_offset:g}"
    return ":".join(
        [
            "western",
            birth.date,
            birth.time,
            f"{birth.latitude:.{COORDINATE_DECIMALS}f}",
            f"{birth.longitude:.{COORDINATE_DECIMALS}f}",
            timezone_name or "-",
            offset,
            house_system.lower(),
        ]
    )


class ChartService:
    def __init__(
        self,
        settings: Settings,
        store: ChartStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.store = store
        self.client = AstrologyApiClient(settings, transport=transport)

    def resolve_offset(self, birth: BirthInput, timezone_name: Optional[str]) -> float:
        if birth.tz_offset is not None:
            return birth.tz_offset
        return resolve_offset_hours(birth.date, birth.time, timezone_name or self.settings.default_timezone)

    async def western_chart(self, birth: BirthInput) -> ChartResult:
        self.settings.require_credentials()

        timezone_name = birth.timezone or self.settings.default_timezone
        house_system = birth.house_system or DEFAULT_HOUSE_SYSTEM
        key = build_cache_key(birth, timezone_name, house_system)

        entry = get_fresh(self.store, key)
        tzone = self.resolve_offset(birth, timezone_name)

        if entry is not None:
            logger.info("chart_cache_hit", extra={"cache_key": key, "source": "cache"})
            chart = entry.value
            source = "cache"
        else:
            payload = build_upstream_payload(birth, tzone, house_system)
            raw = await self.client.fetch_chart(payload)
            chart = normalize(raw)
            self.store.set(key, chart)
            logger.info("chart_computed", extra={"cache_key": key, "source": "upstream"})
            source = "upstream"

        return ChartResult(
            chart=chart,
            source=source,
            tzone=tzone,
            timezone=timezone_name,
            house_system=house_system,
            cache_key=key,
        )
