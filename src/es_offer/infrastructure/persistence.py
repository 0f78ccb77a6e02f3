"""OfferStore — concrete implementation of OfferStoreProtocol.

Exclusivity: `create` checks for an existing row first; the primary key on
offers.address is the final guard. In practice a racing make loses earlier,
when it opens the same vault address, and the service reports that as
DuplicateOffer too.
Single consumption: take and cancel load the row with `get(for_update=True)`
before touching any balance, and `consume` deletes it in the same
transaction. A racing take blocks on that first read and then finds nothing.

Transaction ownership: The CALLER is responsible for commit/rollback.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.errors import DuplicateOfferError, OfferNotFoundError
from src.es_offer.domain.layout import decode_offer, encode_offer
from src.es_offer.domain.models import Offer, StoredOffer
from src.es_offer.infrastructure.db_models import OfferORM


def _orm_to_stored(orm: OfferORM) -> StoredOffer:
    return StoredOffer(
        address=orm.address,
        offer=decode_offer(orm.data),
        storage_deposit=orm.storage_deposit,
        created_at=orm.created_at,
    )


class OfferStore:
    async def get(
        self, db: AsyncSession, address: str, for_update: bool = False
    ) -> StoredOffer | None:
        stmt = select(OfferORM).where(OfferORM.address == address)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        orm = result.scalar_one_or_none()
        return _orm_to_stored(orm) if orm else None

    async def exists(self, db: AsyncSession, address: str) -> bool:
        result = await db.execute(select(OfferORM.address).where(OfferORM.address == address))
        return result.scalar_one_or_none() is not None

    async def create(
        self, db: AsyncSession, address: str, offer: Offer, storage_deposit: int
    ) -> StoredOffer:
        if await self.exists(db, address):
            raise DuplicateOfferError(address)

        orm = OfferORM(
            address=address,
            maker=offer.maker,
            data=encode_offer(offer),
            storage_deposit=storage_deposit,
        )
        db.add(orm)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise DuplicateOfferError(address) from exc
        return StoredOffer(
            address=address,
            offer=offer,
            storage_deposit=storage_deposit,
            created_at=orm.created_at,
        )

    async def consume(self, db: AsyncSession, address: str) -> StoredOffer:
        """Atomically read and delete the offer at `address`."""
        result = await db.execute(
            select(OfferORM).where(OfferORM.address == address).with_for_update()
        )
        orm = result.scalar_one_or_none()
        if orm is None:
            raise OfferNotFoundError(address)

        stored = _orm_to_stored(orm)
        await db.delete(orm)
        await db.flush()
        return stored
