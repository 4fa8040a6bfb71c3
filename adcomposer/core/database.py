"""
Database client for the voice catalogue
"""

from typing import Optional
from supabase import create_client, Client
from .config import Config


_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Get or create Supabase client (singleton pattern)

    Returns:
        Supabase client instance

    Raises:
        ValueError: If SUPABASE_URL or SUPABASE_SERVICE_KEY is missing
    """
    global _supabase_client

    if _supabase_client is None:
        missing = [
            name for name, value in (
                ('SUPABASE_URL', Config.SUPABASE_URL),
                ('SUPABASE_SERVICE_KEY', Config.SUPABASE_SERVICE_KEY),
            ) if not value
        ]
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")
        _supabase_client = create_client(
            Config.SUPABASE_URL,
            Config.SUPABASE_SERVICE_KEY
        )

    return _supabase_client


def reset_supabase_client():
    """Reset the Supabase client (useful for testing)"""
    global _supabase_client
    _supabase_client = None
