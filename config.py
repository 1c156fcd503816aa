# config.py
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///carbon.db"
DEFAULT_GEMINI_MODEL = "gemini-1.5-pro-latest"
TOKEN_MAX_AGE = 60 * 60 * 24 * 7  # 1 week
REQUEST_TIMEOUT = 5.0


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    secret_key: str = "change-me"
    token_max_age: int = TOKEN_MAX_AGE
    request_timeout: float = REQUEST_TIMEOUT
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL
    log_level: str = "INFO"


def _env_number(environ, name, default, cast):
    raw = environ.get(name)
    if raw in (None, ""):
        return default
    try:
        return cast(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring invalid %s=%r", name, raw)
        return default


def load_settings(environ=None, dotenv=True):
    """Build Settings from the environment (and a .env file when present)."""
    if environ is None:
        if dotenv:
            load_dotenv()
        environ = os.environ
    return Settings(
        database_url=environ.get("CARBON_DATABASE_URL") or DEFAULT_DATABASE_URL,
        secret_key=environ.get("CARBON_SECRET_KEY") or "change-me",
        token_max_age=_env_number(environ, "CARBON_TOKEN_MAX_AGE", TOKEN_MAX_AGE, int),
        request_timeout=_env_number(environ, "CARBON_REQUEST_TIMEOUT", REQUEST_TIMEOUT, float),
        gemini_api_key=environ.get("GEMINI_API_KEY", ""),
        gemini_model=environ.get("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        log_level=(environ.get("CARBON_LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level="INFO"):
    root = logging.getLogger()
    if not any(getattr(h, "_carbon", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        handler._carbon = True
        root.addHandler(handler)
    root.setLevel(level)
