"""Resolve bearer tokens to users through Supabase Auth."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from supabase import Client

from recipe_photos.domain.photos import AuthContext

logger = logging.getLogger(__name__)


class IdentityResolver(Protocol):
    """Interface for turning a bearer token into a user identity."""

    async def resolve(self, access_token: str) -> AuthContext | None:
        """Return the caller's identity, or None if the token is not valid."""


@dataclass
class SupabaseIdentityResolver(IdentityResolver):
    """Identity resolver backed by Supabase Auth."""

    client: Client

    async def resolve(self, access_token: str) -> AuthContext | None:
        """Look up the user that owns the access token."""
        try:
            response = await asyncio.to_thread(self.client.auth.get_user, access_token)
        except Exception:
            logger.warning("Supabase rejected access token", exc_info=True)
            return None
        user = response.user if response else None
        if user is None:
            return None
        return AuthContext(user_id=UUID(str(user.id)), access_token=access_token)
