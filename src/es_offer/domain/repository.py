"""Offer store Protocol — dependency inversion for testability.

There is no update method: an Offer is written once by
make and removed once by take or cancel.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.es_offer.domain.models import Offer, StoredOffer


class OfferStoreProtocol(Protocol):
    async def get(
        self, db: AsyncSession, address: str, for_update: bool = False
    ) -> StoredOffer | None: ...

    async def exists(self, db: AsyncSession, address: str) -> bool: ...

    async def create(
        self, db: AsyncSession, address: str, offer: Offer, storage_deposit: int
    ) -> StoredOffer: ...

    async def consume(self, db: AsyncSession, address: str) -> StoredOffer: ...
