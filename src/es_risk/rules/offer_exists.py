from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.errors import DuplicateOfferError, OfferNotFoundError
from src.es_offer.domain.models import StoredOffer
from src.es_offer.domain.repository import OfferStoreProtocol


async def check_offer_absent(store: OfferStoreProtocol, address: str, db: AsyncSession) -> None:
    if await store.exists(db, address):
        raise DuplicateOfferError(address)


async def require_offer(
    store: OfferStoreProtocol, address: str, db: AsyncSession, for_update: bool = False
) -> StoredOffer:
    """Load the offer or fail with OfferNotFound.

    With `for_update` the row stays locked until the caller's transaction
    ends, so a second take or cancel waits here and then finds nothing.
    """
    stored = await store.get(db, address, for_update=for_update)
    if stored is None:
        raise OfferNotFoundError(address)
    return stored
