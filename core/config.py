"""Process configuration.

Values come from the environment (optionally seeded from a ``.env`` file by
``load_dotenv`` in ``main``) and are read on every call so that deployments
and tests can change them without restarting the process.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from core.errors import ConfigurationError

DEFAULT_API_BASE = "https://json.astrologyapi.com/v1"
DEFAULT_ENDPOINT = "western_horoscope"
DEFAULT_TIMEZONE = "Europe/Amsterdam"
DEFAULT_HOUSE_SYSTEM = "placidus"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(name, f"{name} must be a number, got {raw!r}.") from exc


@dataclass(frozen=True)
class Settings:
    api_user_id: Optional[str]
    api_key: Optional[str]
    api_base: str = DEFAULT_API_BASE
    endpoint: str = DEFAULT_ENDPOINT
    form_encoded: bool = False
    timeout_seconds: float = 30.0
    default_timezone: str = DEFAULT_TIMEZONE
    cache_ttl_days: float = 30.0
    cache_maxsize: int = 0
    log_level: str = "INFO"
    port: int = 8080

    @property
    def endpoint_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/{self.endpoint.lstrip('/')}"

    @property
    def credentials_configured(self) -> bool:
        return bool(self.api_user_id and self.api_key)

    def require_credentials(self) -> tuple[str, str]:
        if not self.api_user_id:
            raise ConfigurationError("ASTROLOGY_API_USER_ID")
        if not self.api_key:
            raise ConfigurationError("ASTROLOGY_API_KEY")
        return self.api_user_id, self.api_key


def load_settings() -> Settings:
    return Settings(
        api_user_id=os.getenv("ASTROLOGY_API_USER_ID") or None,
        api_key=os.getenv("ASTROLOGY_API_KEY") or None,
        api_base=os.getenv("ASTROLOGY_API_BASE", DEFAULT_API_BASE),
        endpoint=os.getenv("ASTROLOGY_API_ENDPOINT", DEFAULT_ENDPOINT),
        form_encoded=_env_bool("ASTROLOGY_API_FORM_ENCODED"),
        timeout_seconds=_env_number("UPSTREAM_TIMEOUT_SECONDS", "30", float),
        default_timezone=os.getenv("DEFAULT_TIMEZONE", DEFAULT_TIMEZONE),
        cache_ttl_days=_env_number("CHART_CACHE_TTL_DAYS", "30", float),
        cache_maxsize=_env_number("CHART_CACHE_MAXSIZE", "0", int),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=_env_number("PORT", "8080", int),
    )
