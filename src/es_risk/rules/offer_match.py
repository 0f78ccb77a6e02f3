"""Caller-supplied offer terms must equal what was stored.

Defends against a caller pointing at a real offer address while naming a
different maker or asset pair than the one the offer was bound to.
"""
from src.es_common.errors import OfferMismatchError
from src.es_offer.domain.models import Offer


def check_offer_matches(stored: Offer, maker: str, asset_a: str, asset_b: str) -> None:
    for field, claimed, actual in (
        ("maker", maker, stored.maker),
        ("asset_a", asset_a, stored.asset_a),
        ("asset_b", asset_b, stored.asset_b),
    ):
        if claimed.lower() != actual:
            raise OfferMismatchError(field)


def check_is_maker(stored: Offer, caller: str) -> None:
    """Only the maker may withdraw an offer."""
    if caller.lower() != stored.maker:
        raise OfferMismatchError("maker")
