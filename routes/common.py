from __future__ import annotations
from fastapi import Request

from core.config import load_settings
from services.chart_service import ChartService


def get_chart_service(request: Request) -> ChartService:
    """Builds a ChartService from the current process configuration."""
    return ChartService(
        settings=load_settings(),
        store=request.app.state.chart_cache,
        transport=getattr(request.app.state, "upstream_transport", None),
    )


def request_id_of(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)
