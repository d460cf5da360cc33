import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    log_level: str

    api_base_url: str
    api_timeout_seconds: float

    payhere_sandbox: bool
    payhere_merchant_id: str
    payhere_notify_url: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name)
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def _getfloat(name: str, default: float) -> float:
    raw = _getenv(name)
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        api_base_url=_getenv("API_BASE_URL", "http://localhost:5000/api"),
        api_timeout_seconds=_getfloat("API_TIMEOUT_SECONDS", 15.0),
        payhere_sandbox=_getbool("PAYHERE_SANDBOX", True),
        payhere_merchant_id=_getenv("PAYHERE_MERCHANT_ID", ""),
        payhere_notify_url=_getenv("PAYHERE_NOTIFY_URL", ""),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "LOG_LEVEL": s.log_level,
        "API_BASE_URL": s.api_base_url,
        "API_BASE_URL_EXPLICIT": bool(_getenv("API_BASE_URL")),
        "API_TIMEOUT_SECONDS": s.api_timeout_seconds,
        "PAYHERE_SANDBOX": s.payhere_sandbox,
        "PAYHERE_MERCHANT_ID": s.payhere_merchant_id,
        "PAYHERE_NOTIFY_URL": s.payhere_notify_url,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
    }
