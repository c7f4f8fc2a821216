"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
import tempfile
from collections.abc import Callable, Coroutine
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from kungfu import Result, Ok, Error
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from cardescrow import escrow as X
from cardescrow.store import Catalog, create_database


# Fixed clock
class FixedClock:
    def __init__(self, at: datetime | None = None) -> None:
        self.at = at or datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.at


# Seeded marketplace
async def seeded_database(
    path: Path | None = None,
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Temporary SQLite file with a buyer, a seller, an admin and two listings."""
    path = path or Path(tempfile.mkdtemp()) / "escrow.db"
    session_factory, engine = await create_database(f"sqlite+aiosqlite:///{path}")
    catalog = Catalog(session_factory)

    await catalog.add_profile("buyer", "Ash")
    await catalog.add_profile("seller", "Misty", X.Role.SELLER)
    await catalog.add_profile("admin", "Oak", X.Role.ADMIN)
    await catalog.add_listing(
        "charizard", "seller", "Charizard Base Set Holo",
        Decimal("8500"), Decimal("120"),
        (X.ShippingMethod.LBC, X.ShippingMethod.JT_EXPRESS),
    )
    await catalog.add_listing(
        "pikachu", "seller", "Pikachu Illustrator",
        Decimal("1000"), allows_meetup=True,
    )
    return session_factory, engine


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def show[T](label: str, result: Result[T, object]) -> T | None:
    match result:
        case Ok(value):
            print(f"  ✓ {label}")
            return value
        case Error(e):
            print(f"  ✗ {label}: {e}")
            return None


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())
