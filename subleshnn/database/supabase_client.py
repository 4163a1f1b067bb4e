import logging
from typing import Optional

from supabase import create_client, Client
from subleshnn.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Process-wide Supabase clients: the anon-key client for request handling
    and, when a service_role key is configured, a second client that bypasses
    row level security."""

    _client: Optional[Client] = None
    _service_client: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            logger.info("Connecting to Supabase at %s", settings.supabase_url)
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Used for listing cascade deletes and data exports. Falls back to the anon client without a service key."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        if cls._service_client is None:
            logger.warning("SUPABASE_SERVICE_ROLE_KEY not set - cascade deletes run with the anon key")
            return cls.get_client()
        return cls._service_client

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()


def check_connection(supabase: Client) -> bool:
    """Cheapest query that proves the listings table is reachable"""
    try:
        supabase.table("listings").select("id").limit(1).execute()
        return True
    except Exception as e:
        logger.error("Supabase readiness check failed: %s", e)
        return False
