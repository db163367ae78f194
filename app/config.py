from __future__ import annotations

import os

DEFAULT_SECRET_KEY = "dev-orientation-secret-change-me"


def _env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name, default) or default).strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name, "") or "").strip() or default)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(str(os.getenv(name, "") or "").strip() or default)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = str(os.getenv(name, "") or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: list[str] | None = None) -> list[str]:
    raw = str(os.getenv(name, "") or "").strip()
    if not raw:
        return list(default or [])
    return [x.strip() for x in raw.split(",") if x.strip()]


class Config:
    """Settings read from the environment (``.env`` is loaded by create_app)."""

    def __init__(self):
        self.ENV = _env_str("ENV", "development").lower()
        self.IS_PRODUCTION = self.ENV in {"prod", "production"}
        self.APP_VERSION = _env_str("APP_VERSION", "0.1.0")
        self.LOG_LEVEL = _env_str("LOG_LEVEL", "INFO").upper()

        self.DATABASE_URL = _env_str("DATABASE_URL", "sqlite:///orientation.db")

        self.CORS_ORIGINS = _env_list("CORS_ORIGINS", ["http://localhost:3000"])
        self.CORS_ALLOW_CREDENTIALS = _env_bool("CORS_ALLOW_CREDENTIALS", True)

        self.SECRET_KEY = _env_str("SECRET_KEY", DEFAULT_SECRET_KEY)
        self.VIDEO_URL = _env_str("VIDEO_URL", "/videos/orientation.mp4")
        self.VIDEO_TOKEN_EXPIRY_SECONDS = max(60, _env_int("VIDEO_TOKEN_EXPIRY_SECONDS", 3600))
        self.VIDEO_SEEK_TOLERANCE_SECONDS = max(0.0, _env_float("VIDEO_SEEK_TOLERANCE_SECONDS", 2.0))
        self.VIDEO_END_TOLERANCE_SECONDS = max(0.0, _env_float("VIDEO_END_TOLERANCE_SECONDS", 2.0))
        # 0 means the first length reported by the player is kept.
        self.VIDEO_DURATION_SECONDS = max(0.0, _env_float("VIDEO_DURATION_SECONDS", 0.0))

        self.SUBMISSION_URL = _env_str("SUBMISSION_URL", "")
        self.SUBMISSION_HMAC_SECRET = _env_str("SUBMISSION_HMAC_SECRET", "")
        self.SUBMISSION_TIMEOUT_SECONDS = max(1.0, _env_float("SUBMISSION_TIMEOUT_SECONDS", 10.0))
        self.SUBMISSION_SYNC_INLINE = _env_bool("SUBMISSION_SYNC_INLINE", True)

        self.ADMIN_TOKEN = _env_str("ADMIN_TOKEN", "")
        self.MAX_SIGNATURE_BYTES = max(1024, _env_int("MAX_SIGNATURE_BYTES", 512 * 1024))

        self.RATE_LIMIT_GLOBAL = _env_str("RATE_LIMIT_GLOBAL", "600/min")
        self.REDIS_URL = _env_str("REDIS_URL", "")
        self.SYNC_INTERVAL_SECONDS = max(0, _env_int("SYNC_INTERVAL_SECONDS", 0))

        self.ENABLE_COMPRESSION = _env_bool("ENABLE_COMPRESSION", True)
        self.COMPRESSION_MIN_SIZE = max(0, _env_int("COMPRESSION_MIN_SIZE", 500))
        self.COMPRESSION_LEVEL = max(1, min(9, _env_int("COMPRESSION_LEVEL", 6)))

    def validate(self) -> None:
        if not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL is required")
        if self.IS_PRODUCTION and self.SECRET_KEY == DEFAULT_SECRET_KEY:
            raise RuntimeError("SECRET_KEY must be set in production")
        if self.SUBMISSION_URL and not self.SUBMISSION_URL.lower().startswith(("http://", "https://")):
            raise RuntimeError("SUBMISSION_URL must be an http(s) URL")


def get_config() -> Config:
    cfg = Config()
    cfg.validate()
    return cfg
