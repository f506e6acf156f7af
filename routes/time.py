from __future__ import annotations

from fastapi import APIRouter

from core.config import load_settings
from core.timezone_utils import resolve_offset_hours
from schemas.time import OffsetRequest, OffsetResponse

router = APIRouter()


@router.post("/api/time/offset", response_model=OffsetResponse)
def resolve_offset(body: OffsetRequest):
    timezone_name = body.timezone or load_settings().default_timezone
    tzone = resolve_offset_hours(body.date, body.time, timezone_name)
    return OffsetResponse(date=body.date, time=body.time, timezone=timezone_name, tzone=tzone)
