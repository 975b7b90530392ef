from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class AlertSettings:
    period_seconds: float
    burst_tones: int
    tone_gap_seconds: float
    tone_frequency_hz: float
    tone_duration_seconds: float
    tone_gain: float


@dataclass(frozen=True)
class Settings:
    app_env: str
    log_level: str
    database_url: str | None
    redis_url: str | None
    currency: str
    dashboard_poll_seconds: float
    alert: AlertSettings
    service_name: str = "tableside"
    otlp_endpoint: str | None = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        app_env=os.getenv("APP_ENV", "dev").lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        database_url=os.getenv("DATABASE_URL") or None,
        redis_url=os.getenv("REDIS_URL") or None,
        currency=os.getenv("ORDER_CURRENCY", "HTG").upper(),
        dashboard_poll_seconds=_float_env("DASHBOARD_POLL_SECONDS", 3.0),
        alert=AlertSettings(
            period_seconds=_float_env("ALERT_PERIOD_SECONDS", 3.0),
            burst_tones=_int_env("ALERT_BURST_TONES", 3),
            tone_gap_seconds=_float_env("ALERT_TONE_GAP_SECONDS", 0.2),
            tone_frequency_hz=_float_env("ALERT_TONE_FREQUENCY_HZ", 800.0),
            tone_duration_seconds=_float_env("ALERT_TONE_DURATION_SECONDS", 0.3),
            tone_gain=_float_env("ALERT_TONE_GAIN", 0.3),
        ),
        service_name=os.getenv("OTEL_SERVICE_NAME", "tableside"),
        otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
    )
