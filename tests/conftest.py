"""
Pytest fixtures for the escrow engine.

Every test gets its own SQLite file (not :memory:) so that concurrent
sessions use separate connections, the way they would in production.

Seeded marketplace:
    profiles  buyer, seller, admin, admin-2, outsider, banned
    listings  charizard  8500.00 + 120.00 shipping, lbc / jt_express
              pikachu    1000.00, free shipping, meetup allowed
              mewtwo     owned by seller, already reserved
"""

from collections.abc import AsyncIterator
from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardescrow import escrow as X
from cardescrow.ops import Runner
from cardescrow.settings import EscrowSettings
from cardescrow.store import Catalog, SQLAlchemyLedger, SQLAlchemyOutbox, create_database

from tests.helpers import FrozenClock


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings(tmp_path) -> EscrowSettings:
    return EscrowSettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'escrow.db'}")


@pytest_asyncio.fixture
async def session_factory(settings: EscrowSettings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    session_factory, engine = await create_database(settings.database_url)
    yield session_factory
    await engine.dispose()


@pytest_asyncio.fixture
async def catalog(session_factory: async_sessionmaker[AsyncSession]) -> Catalog:
    catalog = Catalog(session_factory)

    await catalog.add_profile("buyer", "Ash")
    await catalog.add_profile("seller", "Misty", X.Role.SELLER)
    await catalog.add_profile("admin", "Oak", X.Role.ADMIN)
    await catalog.add_profile("admin-2", "Elm", X.Role.ADMIN)
    await catalog.add_profile("outsider", "Gary")
    await catalog.add_profile("banned", "Rocket", is_banned=True)

    await catalog.add_listing(
        "charizard", "seller", "Charizard Base Set Holo",
        Decimal("8500"), Decimal("120"),
        (X.ShippingMethod.LBC, X.ShippingMethod.JT_EXPRESS),
    )
    await catalog.add_listing(
        "pikachu", "seller", "Pikachu Illustrator",
        Decimal("1000"), Decimal("0"),
        (X.ShippingMethod.LBC,),
        allows_meetup=True,
    )
    await catalog.add_listing(
        "mewtwo", "seller", "Mewtwo Promo",
        Decimal("300"), status=X.ListingStatus.RESERVED,
    )
    return catalog


@pytest.fixture
def ledger(session_factory: async_sessionmaker[AsyncSession], catalog: Catalog) -> SQLAlchemyLedger:
    return SQLAlchemyLedger(session_factory)


@pytest.fixture
def outbox(session_factory: async_sessionmaker[AsyncSession]) -> SQLAlchemyOutbox:
    return SQLAlchemyOutbox(session_factory)


@pytest.fixture
def runner(ledger: SQLAlchemyLedger, settings: EscrowSettings, clock: FrozenClock) -> Runner:
    return X.escrow_runner(ledger, settings, clock)
