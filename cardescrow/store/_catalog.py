"""
Catalog: profiles and listings.

Both tables are owned by the surrounding marketplace; the escrow engine
only reads them and moves listing status. The catalog is how that
marketplace (or a test) puts rows there.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardescrow._types import UserId, ListingId
from cardescrow.escrow._models import Caller, Listing, ListingStatus, Role, ShippingMethod
from cardescrow.store._ledger import to_listing
from cardescrow.store._tables import ProfileTable, ListingTable


class Catalog:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_profile(
        self,
        user_id: UserId,
        username: str | None = None,
        role: Role = Role.USER,
        is_banned: bool = False,
    ) -> Caller:
        async with self._session_factory() as session:
            session.add(ProfileTable(
                id=user_id,
                username=username or user_id,
                role=role.value,
                is_banned=is_banned,
            ))
            await session.commit()
        return Caller(user_id, role, is_banned)

    async def get_profile(self, user_id: UserId) -> Caller | None:
        async with self._session_factory() as session:
            row = await session.get(ProfileTable, user_id)
            if row is None:
                return None
            return Caller(row.id, Role(row.role), row.is_banned)

    async def set_banned(self, user_id: UserId, is_banned: bool = True) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(ProfileTable).where(ProfileTable.id == user_id).values(is_banned=is_banned)
            )
            await session.commit()

    async def add_listing(
        self,
        listing_id: ListingId,
        seller_id: UserId,
        card_name: str,
        price: Decimal,
        shipping_fee: Decimal = Decimal("0"),
        shipping_options: tuple[ShippingMethod, ...] = (ShippingMethod.LBC,),
        allows_meetup: bool = False,
        status: ListingStatus = ListingStatus.ACTIVE,
    ) -> Listing:
        row = ListingTable(
            id=listing_id,
            seller_id=seller_id,
            card_name=card_name,
            price=price,
            shipping_fee=shipping_fee,
            shipping_options=[s.value for s in shipping_options],
            allows_meetup=allows_meetup,
            status=status.value,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return to_listing(row)

    async def get_listing(self, listing_id: ListingId) -> Listing | None:
        async with self._session_factory() as session:
            row = await session.get(ListingTable, listing_id)
            return to_listing(row) if row else None


__all__ = ("Catalog",)
