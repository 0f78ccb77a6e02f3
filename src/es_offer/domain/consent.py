"""Consent messages for each escrow action.

Whatever a client signs must be rebuilt byte-for-byte here, so these helpers
are the single definition of what each signature covers. Every message
carries a caller-chosen nonce; a spent message is never accepted again, and
the nonce is what lets a party approve the same action twice on purpose.
"""

from src.es_common.enums import ConsentAction
from src.es_ledger.domain.authorization import consent_message
from src.es_offer.domain.models import Offer


def make_offer_message(
    program_id: str,
    maker: str,
    offer_id: int,
    asset_a: str,
    asset_b: str,
    amount_a_offered: int,
    amount_b_wanted: int,
    nonce: int,
) -> bytes:
    return consent_message(
        ConsentAction.MAKE_OFFER,
        program=program_id,
        maker=maker,
        offer_id=offer_id,
        asset_a=asset_a,
        asset_b=asset_b,
        amount_a_offered=amount_a_offered,
        amount_b_wanted=amount_b_wanted,
        nonce=nonce,
    )


def take_offer_message(
    program_id: str, offer_address: str, offer: Offer, taker: str, nonce: int
) -> bytes:
    """The taker signs the stored terms, not just the address.

    An address is reused when the maker lists the same id again, so a
    signature over the address alone would carry over to the new terms.
    """
    return consent_message(
        ConsentAction.TAKE_OFFER,
        program=program_id,
        offer=offer_address,
        taker=taker,
        maker=offer.maker,
        offer_id=offer.id,
        asset_a=offer.asset_a,
        asset_b=offer.asset_b,
        amount_b_wanted=offer.amount_b_wanted,
        authority_proof=offer.authority_proof,
        nonce=nonce,
    )


def cancel_offer_message(program_id: str, offer_address: str, maker: str, nonce: int) -> bytes:
    return consent_message(
        ConsentAction.CANCEL_OFFER,
        program=program_id,
        offer=offer_address,
        maker=maker,
        nonce=nonce,
    )
