from __future__ import annotations
from typing import Any, Literal, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from core.timezone_utils import parse_date_yyyy_mm_dd, parse_time_hh_mm
from core.errors import ClientInputError


class BirthInput(BaseModel):
    """Birth data as received from the caller."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field("", description="Optional label echoed back in meta.")
    date: str = Field(..., description="Birth date in YYYY-MM-DD (e.g. 1981-10-17).")
    time: str = Field(..., description="Local birth time in HH:MM, 24-hour clock (e.g. 08:55).")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timezone: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("timezone", "timezoneName", "timezone_name"),
        description="IANA timezone (e.g. Europe/Amsterdam). Defaults to DEFAULT_TIMEZONE.",
    )
    house_system: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("house_system", "houseSystem", "house_type"),
        description="House system passed to AstrologyAPI as house_type (e.g. placidus).",
    )
    tz_offset: Optional[float] = Field(
        None,
        ge=-14,
        le=14,
        validation_alias=AliasChoices("tz_offset", "explicitOffsetHours", "explicit_offset_hours"),
        description="Explicit UTC offset in hours. When present the timezone is not consulted.",
    )

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, value: Any) -> Any:
        try:
            parse_date_yyyy_mm_dd(value)
        except ClientInputError as exc:
            raise ValueError(exc.message) from exc
        return value

    @field_validator("time", mode="before")
    @classmethod
    def validate_time(cls, value: Any) -> Any:
        try:
            parse_time_hh_mm(value)
        except ClientInputError as exc:
            raise ValueError(exc.message) from exc
        return value

    @field_validator("latitude", "longitude", "tz_offset", mode="before")
    @classmethod
    def require_json_number(cls, value: Any) -> Any:
        if value is None:
            return value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        return value


class CelestialBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    sign: Optional[str] = None
    house: Optional[int] = None
    degree: Optional[float] = None
    is_retrograde: bool = False


class HouseCusp(BaseModel):
    model_config = ConfigDict(frozen=True)

    house: int = Field(..., ge=1, le=12)
    sign: Optional[str] = None
    start_degree: Optional[float] = None
    end_degree: Optional[float] = None


class NormalizedChart(BaseModel):
    model_config = ConfigDict(frozen=True)

    bodies: list[CelestialBody] = Field(default_factory=list)
    houses: list[HouseCusp] = Field(default_factory=list)
    aspects: list[Any] = Field(default_factory=list)
    chart_url: Optional[str] = None


class ChartMeta(BaseModel):
    name: str
    date: str
    time: str
    latitude: float
    longitude: float
    timezone: Optional[str]
    tzone: float
    house_system: str


class WesternChartData(BaseModel):
    chart: NormalizedChart
    meta: ChartMeta
    source: Literal["cache", "upstream"]


class WesternChartResponse(BaseModel):
    ok: bool = True
    data: WesternChartData
    error: None = None
    request_id: Optional[str] = None
