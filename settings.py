from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Object storage
    storage_root: str
    video_container: str

    # Metadata document
    metadata_container: str
    metadata_blob_name: str
    metadata_max_attempts: int
    metadata_retry_base_delay: float
    metadata_retry_max_delay: float

    # Sentiment (optional; comments fall back to "neutral")
    text_analytics_endpoint: str
    text_analytics_key: str
    sentiment_timeout: float

    # HTTP
    cors_allow_origins: tuple[str, ...]

    # Debug
    log_level: str
    debug_log_requests: bool


def get_settings() -> Settings:
    storage_root = os.getenv("STORAGE_ROOT", "").strip() or os.path.join(os.getcwd(), "data")

    origins_raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    cors_allow_origins = tuple(o.strip().rstrip("/") for o in origins_raw.split(",") if o.strip()) or ("*",)

    return Settings(
        storage_root=storage_root,
        video_container=os.getenv("VIDEO_CONTAINER", "videos"),
        metadata_container=os.getenv("METADATA_CONTAINER", "metadata"),
        metadata_blob_name=os.getenv("METADATA_BLOB_NAME", "data.json"),
        # Never fewer than one attempt, whatever the environment says.
        metadata_max_attempts=max(1, _env_int("METADATA_MAX_ATTEMPTS", 5)),
        metadata_retry_base_delay=max(0.0, _env_float("METADATA_RETRY_BASE_DELAY", 0.05)),
        metadata_retry_max_delay=max(0.0, _env_float("METADATA_RETRY_MAX_DELAY", 1.0)),
        text_analytics_endpoint=os.getenv("TEXT_ANALYTICS_ENDPOINT", "").strip().rstrip("/"),
        text_analytics_key=os.getenv("TEXT_ANALYTICS_KEY", "").strip(),
        sentiment_timeout=_env_float("SENTIMENT_TIMEOUT", 5.0),
        cors_allow_origins=cors_allow_origins,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        debug_log_requests=_env_bool("DEBUG_LOG_REQUESTS", False),
    )
