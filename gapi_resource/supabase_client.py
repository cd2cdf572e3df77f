"""
Supabase client initialization for the credential store.

Uses the service-role key: credential records are backend data and are only
touched after the request has passed the resource's own access check.
"""
from __future__ import annotations

from functools import lru_cache

from supabase import create_client, Client

from .config import Settings


@lru_cache
def get_supabase_client(url: str, service_role_key: str) -> Client:
    """
    Get a Supabase client with service role key.

    Args:
        url: Supabase project URL
        service_role_key: Supabase service role key

    Returns:
        Supabase client instance
    """
    return create_client(url, service_role_key)


def get_db(settings: Settings) -> Client:
    """Get the Supabase client configured by settings."""
    return get_supabase_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
    )
