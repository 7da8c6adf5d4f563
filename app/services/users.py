"""Lookup of registered users in the Supabase profiles table."""

import logging

from supabase import AsyncClient

logger = logging.getLogger(__name__)


class UserDirectory:
    def __init__(self, supabase: AsyncClient):
        self._supabase = supabase

    async def get_user(self, username: str) -> dict | None:
        """Return the profile row ``{"id", "username"}`` for a username, or None.

        Lookup failures are logged and reported as an unknown user.
        """
        try:
            response = (
                await self._supabase.table("profiles")
                .select("id, username")
                .eq("username", username)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning("Failed to look up user %s: %s", username, e)
            return None
        return response.data[0] if response.data else None

    async def user_exists(self, username: str) -> bool:
        return await self.get_user(username) is not None
