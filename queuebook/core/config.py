import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./queuebook.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:5173"])

SLOT_GRANULARITY_MINUTES = int(os.getenv("SLOT_GRANULARITY_MINUTES", "30"))
SLOT_EXCLUSION_MODE = os.getenv("SLOT_EXCLUSION_MODE", "interval").strip().lower()
QUEUE_BUFFER_MINUTES = int(os.getenv("QUEUE_BUFFER_MINUTES", "0"))

SLOT_EXCLUSION_MODES = {"interval", "exact"}


def validate_runtime_config() -> None:
    if SLOT_GRANULARITY_MINUTES <= 0:
        raise RuntimeError("SLOT_GRANULARITY_MINUTES must be a positive number of minutes.")
    if QUEUE_BUFFER_MINUTES < 0:
        raise RuntimeError("QUEUE_BUFFER_MINUTES cannot be negative.")
    if SLOT_EXCLUSION_MODE not in SLOT_EXCLUSION_MODES:
        raise RuntimeError(f"SLOT_EXCLUSION_MODE must be one of {sorted(SLOT_EXCLUSION_MODES)}.")
    if APP_ENV.lower() == "production" and DATABASE_URL.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point at Postgres in production.")
