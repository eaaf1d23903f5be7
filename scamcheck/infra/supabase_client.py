from __future__ import annotations

from typing import Any

from scamcheck.config import Settings


def get_supabase_client(settings: Settings) -> tuple[Any | None, str | None]:
    if not settings.supabase_url or not settings.supabase_key:
        return None, "SUPABASE_URL or SUPABASE_KEY missing"

    if not settings.supabase_url_valid():
        return None, "SUPABASE_URL invalid (must look like https://<project-ref>.supabase.co)"

    try:
        from supabase import create_client
    except ImportError as exc:
        return None, f"Supabase client import failed: {exc}"

    try:
        return create_client(settings.supabase_url, settings.supabase_key), None
    except Exception as exc:  # pragma: no cover
        return None, f"Supabase init failed: {exc}"
