import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./healthcare.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:4200"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = _get_int(os.getenv("JWT_EXPIRES_MINUTES"), 60)

# Horizon for recurring availability submitted without an end date.
DEFAULT_RECURRENCE_MONTHS = _get_int(os.getenv("DEFAULT_RECURRENCE_MONTHS"), 3)

SEARCH_DEFAULT_LIMIT = _get_int(os.getenv("SEARCH_DEFAULT_LIMIT"), 50)
SEARCH_MAX_LIMIT = _get_int(os.getenv("SEARCH_MAX_LIMIT"), 100)

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SEARCH_DEFAULT_LIMIT > SEARCH_MAX_LIMIT:
        raise RuntimeError("SEARCH_DEFAULT_LIMIT cannot exceed SEARCH_MAX_LIMIT.")
    if DEFAULT_RECURRENCE_MONTHS < 1:
        raise RuntimeError("DEFAULT_RECURRENCE_MONTHS must be at least 1.")
