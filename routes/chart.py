from __future__ import annotations
import logging
from fastapi import APIRouter, Depends, Request

from .common import get_chart_service, request_id_of
from schemas.chart import BirthInput, ChartMeta, WesternChartData, WesternChartResponse
from services.chart_service import ChartService

router = APIRouter()
logger = logging.getLogger("chart-proxy")


@router.post("/api/chart/western", response_model=WesternChartResponse)
async def western_chart(
    body: BirthInput,
    request: Request,
    service: ChartService = Depends(get_chart_service),
):
    """Calculates a western natal chart through AstrologyAPI."""
    result = await service.western_chart(body)

    meta = ChartMeta(
        name=body.name,
        date=body.date,
        time=body.time,
        latitude=body.latitude,
        longitude=body.longitude,
        timezone=result.timezone,
        tzone=result.tzone,
        house_system=result.house_system,
    )
    return WesternChartResponse(
        data=WesternChartData(chart=result.chart, meta=meta, source=result.source),
        request_id=request_id_of(request),
    )
