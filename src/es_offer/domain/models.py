"""Domain models for es_offer — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Offer:
    """An open escrow offer. Immutable from creation until consumption.

    The escrowed quantity of asset A is not stored: it is whatever
    the vault holds right now.
    """

    id: int                  # u64, unique per maker
    maker: str
    asset_a: str
    asset_b: str
    amount_b_wanted: int     # u64, base units of asset_b
    authority_proof: int     # bump that makes the offer address off-curve


@dataclass
class StoredOffer:
    address: str
    offer: Offer
    storage_deposit: int     # native units, refunded to the maker on consume
    created_at: datetime | None = None
