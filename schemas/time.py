from __future__ import annotations
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class OffsetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="HH:MM (24h)")
    timezone: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("timezone", "timezoneName", "timezone_name"),
        description="IANA timezone. Defaults to DEFAULT_TIMEZONE.",
    )


class OffsetResponse(BaseModel):
    date: str
    time: str
    timezone: str
    tzone: float
