"""
Identity: resolve a caller token to a Caller.

This service does not authenticate anyone. A `TokenVerifier` turns the
bearer token into a profile id, and the profile is looked up fresh on
every request so that role and ban changes apply immediately.

`GatewayTokens`, the default, takes the token to BE the profile id. That
is only safe behind the marketplace auth gateway, which verifies the
session and forwards the id; exposed directly, anyone who knows an
admin's id acts as that admin. Deployments without such a gateway inject
their own verifier.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardescrow._types import UserId
from cardescrow.escrow._models import Caller
from cardescrow.store._catalog import Catalog

logger = logging.getLogger(__name__)


class TokenVerifier(Protocol):
    async def user_id_for(self, token: str) -> UserId | None: ...


class GatewayTokens:
    """Token is the profile id forwarded by the auth gateway."""

    async def user_id_for(self, token: str) -> UserId | None:
        return token or None


class StaticTokens:
    """Fixed token → profile id table (service accounts, local runs)."""

    def __init__(self, tokens: Mapping[str, UserId]) -> None:
        self._tokens = dict(tokens)

    async def user_id_for(self, token: str) -> UserId | None:
        return self._tokens.get(token)


class ProfileIdentityProvider:
    """Implements IdentityProvider over the profiles table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tokens: TokenVerifier | None = None,
    ) -> None:
        self._catalog = Catalog(session_factory)
        self._tokens = tokens or GatewayTokens()

    async def resolve(self, token: str) -> Caller | None:
        token = token.strip()
        if not token:
            return None
        user_id = await self._tokens.user_id_for(token)
        if user_id is None:
            logger.info("unverifiable caller token rejected")
            return None
        caller = await self._catalog.get_profile(user_id)
        if caller is None:
            logger.info("token verified for unknown profile %s", user_id)
        return caller


__all__ = (
    "TokenVerifier",
    "GatewayTokens",
    "StaticTokens",
    "ProfileIdentityProvider",
)
