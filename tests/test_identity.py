from cardescrow.escrow import Role
from cardescrow.identity import GatewayTokens, ProfileIdentityProvider, StaticTokens
from cardescrow.store import Catalog


async def test_gateway_tokens_are_profile_ids(session_factory, catalog: Catalog):
    identity = ProfileIdentityProvider(session_factory)

    admin = await identity.resolve("  admin ")
    assert admin is not None and admin.role is Role.ADMIN
    assert await identity.resolve("ghost") is None
    assert await identity.resolve("   ") is None


async def test_injected_verifier_decides_who_is_who(session_factory, catalog: Catalog):
    identity = ProfileIdentityProvider(session_factory, StaticTokens({"tok-7f3a": "admin"}))

    admin = await identity.resolve("tok-7f3a")
    assert admin is not None and admin.user_id == "admin"
    # A bare profile id is not a credential once a verifier is in place
    assert await identity.resolve("admin") is None


async def test_ban_is_read_fresh(session_factory, catalog: Catalog):
    identity = ProfileIdentityProvider(session_factory, GatewayTokens())

    await catalog.set_banned("buyer")
    banned = await identity.resolve("buyer")

    assert banned is not None and banned.is_banned
