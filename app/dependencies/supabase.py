import logging

from supabase import AsyncClient, acreate_client

from app.config import get_settings

logger = logging.getLogger(__name__)

# Async client backing the user directory (profiles table)

_async_supabase: AsyncClient | None = None


async def init_async_supabase() -> AsyncClient:
    """Create the global async Supabase client.

    Must be called during app startup (lifespan).
    """
    global _async_supabase
    settings = get_settings()
    logger.debug("Creating async Supabase client for %s", settings.SUPABASE_URL)
    _async_supabase = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_API_KEY)
    logger.info("Async Supabase client initialized")
    return _async_supabase


async def close_async_supabase() -> None:
    """Close the async Supabase client and its underlying HTTP session."""
    global _async_supabase
    if _async_supabase is None:
        return

    try:
        postgrest = getattr(_async_supabase, "postgrest", None)
        session = getattr(postgrest, "session", None)
        if session is not None:
            await session.aclose()
            logger.debug("Closed Postgrest httpx session")
    except Exception as e:
        logger.warning("Error closing Postgrest session: %s", e)

    _async_supabase = None
    logger.info("Async Supabase client closed")
