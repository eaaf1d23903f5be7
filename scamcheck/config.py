from __future__ import annotations

import re
from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()


def _get_config_value(*keys: str, default: str = "") -> str:
    for key in keys:
        value = os.getenv(key, "").strip()
        if value:
            return value
    return default


def _pick_supabase_key() -> str:
    return (
        _get_config_value("SUPABASE_SERVICE_KEY", "SUPABASE_SERVICE_ROLE_KEY")
        or _get_config_value("SUPABASE_KEY")
        or _get_config_value("SUPABASE_ANON_KEY")
    )


def _split_origins(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    app_env: str
    store_backend: str
    supabase_url: str
    supabase_key: str
    host: str
    port: int
    log_level: str
    cors_origins: tuple[str, ...]
    recent_reports_limit: int

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def supabase_url_valid(self) -> bool:
        # Must be project URL, not postgres DSN.
        return bool(re.match(r"^https://[a-z0-9-]+\.supabase\.co$", self.supabase_url))

    def supabase_key_present(self) -> bool:
        return bool(self.supabase_key)


def load_settings() -> Settings:
    app_env = _get_config_value("APP_ENV", "NODE_ENV", default="dev").lower()
    default_port = "5000" if app_env == "production" else "3000"
    return Settings(
        app_env=app_env,
        store_backend=_get_config_value("STORE_BACKEND", default="memory").lower(),
        supabase_url=_get_config_value("SUPABASE_URL").rstrip("/"),
        supabase_key=_pick_supabase_key(),
        host=_get_config_value("HOST", default="0.0.0.0"),
        port=int(_get_config_value("PORT", default=default_port) or default_port),
        log_level=_get_config_value("LOG_LEVEL", default="INFO").upper(),
        cors_origins=_split_origins(_get_config_value("CORS_ORIGINS", default="*")),
        recent_reports_limit=int(_get_config_value("RECENT_REPORTS_LIMIT", default="10") or 10),
    )


settings = load_settings()
