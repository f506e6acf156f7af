from __future__ import annotations
import subprocess
from pathlib import Path
from typing import Optional
from fastapi import APIRouter

from core.config import load_settings

router = APIRouter()

SERVICE_NAME = "western-chart-proxy"
SERVICE_VERSION = "1.0.0"


def get_git_commit_hash() -> Optional[str]:
    """Returns the current git commit hash, if any."""
    try:
        return (
            subprocess.check_output(
                ["git", "rev-parse", "HEAD"],
                cwd=Path(__file__).parent.parent,
                stderr=subprocess.DEVNULL,
            )
            .decode()
            .strip()
        )
    except (OSError, subprocess.CalledProcessError):
        return None


@router.get("/")
async def root():
    """Root endpoint for uptime probes."""
    settings = load_settings()
    return {
        "ok": True,
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "commit": get_git_commit_hash(),
        "env": {
            "astrology_api": settings.credentials_configured,
            "endpoint": settings.endpoint_url,
            "log_level": settings.log_level,
        },
    }


@router.get("/health")
async def health_check():
    return {"ok": True}


@router.get("/ping")
async def ping():
    return {"ok": True, "message": "OK"}
