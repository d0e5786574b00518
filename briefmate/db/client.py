"""
Supabase client configuration.
Only used to verify bearer tokens; data access goes through the repository.
"""

import os
from functools import lru_cache
from supabase import create_client, Client


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get Supabase client with anon key.
    Use this to resolve the authenticated user from a bearer token.
    """
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")

    return create_client(url, key)
