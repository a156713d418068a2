import logging
from typing import Optional

from supabase import AsyncClient, AsyncClientOptions, acreate_client

from core.config import settings

logger = logging.getLogger(__name__)

# Global service-role client, created on startup
client: Optional[AsyncClient] = None


async def connect_to_supabase() -> None:
    """
    Initialize the service-role Supabase client used for tables and storage.
    """
    global client
    if client is None:
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise ValueError("Supabase URL and Service Role Key must be provided.")
        client = await acreate_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
            options=AsyncClientOptions(persist_session=False, auto_refresh_token=False),
        )
        logger.info("Connected to Supabase at %s", settings.supabase_url)


async def close_supabase() -> None:
    global client
    if client is not None:
        client = None
        logger.info("Supabase client released")


def get_supabase() -> AsyncClient:
    """
    Get the service-role client.
    Raises RuntimeError if the client is not connected.
    """
    if client is None:
        raise RuntimeError(
            "Supabase not connected. Call connect_to_supabase() first."
        )
    return client


async def create_auth_client() -> AsyncClient:
    """
    Build a throwaway client for per-user auth calls.

    The shared client must keep the service-role Authorization header.
    """
    key = settings.supabase_anon_key or settings.supabase_service_role_key
    return await acreate_client(
        settings.supabase_url,
        key,
        options=AsyncClientOptions(persist_session=False, auto_refresh_token=False),
    )


__all__ = [
    "client",
    "connect_to_supabase",
    "close_supabase",
    "get_supabase",
    "create_auth_client",
]
