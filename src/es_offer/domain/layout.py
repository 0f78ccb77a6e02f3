"""Versioned binary layout of a persisted Offer.

    offset  size  field
    0       8     type tag  = sha256(b"account:Offer")[:8]
    8       1     layout version
    9       8     id               u64 LE
    17      32    maker
    49      32    asset_a
    81      32    asset_b
    113     8     amount_b_wanted  u64 LE
    121     1     authority_proof  u8

Records are checked for length, tag and version before any field is read,
so a foreign or truncated blob never becomes an Offer.
"""

import hashlib
import struct

from src.es_common.amounts import is_u64
from src.es_common.errors import InvalidAddressError, MalformedOfferRecordError
from src.es_derivation.domain.addresses import decode_address, encode_address
from src.es_offer.domain.models import Offer

OFFER_TAG: bytes = hashlib.sha256(b"account:Offer").digest()[:8]
LAYOUT_VERSION = 1

_LAYOUT = struct.Struct("<8sBQ32s32s32sQB")
OFFER_RECORD_LEN = _LAYOUT.size


def encode_offer(offer: Offer) -> bytes:
    if not is_u64(offer.id):
        raise MalformedOfferRecordError(f"id {offer.id} is not a u64")
    if not is_u64(offer.amount_b_wanted):
        raise MalformedOfferRecordError(f"amount_b_wanted {offer.amount_b_wanted} is not a u64")
    if not 0 <= offer.authority_proof <= 255:
        raise MalformedOfferRecordError(f"authority_proof {offer.authority_proof} is not a u8")
    try:
        maker = decode_address(offer.maker)
        asset_a = decode_address(offer.asset_a)
        asset_b = decode_address(offer.asset_b)
    except InvalidAddressError as exc:
        raise MalformedOfferRecordError(exc.message) from exc
    return _LAYOUT.pack(
        OFFER_TAG,
        LAYOUT_VERSION,
        offer.id,
        maker,
        asset_a,
        asset_b,
        offer.amount_b_wanted,
        offer.authority_proof,
    )


def decode_offer(data: bytes) -> Offer:
    if len(data) != OFFER_RECORD_LEN:
        raise MalformedOfferRecordError(
            f"expected {OFFER_RECORD_LEN} bytes, got {len(data)}"
        )
    if data[:8] != OFFER_TAG:
        raise MalformedOfferRecordError("type tag is not an Offer")
    if data[8] != LAYOUT_VERSION:
        raise MalformedOfferRecordError(f"unsupported layout version {data[8]}")

    _, _, offer_id, maker, asset_a, asset_b, amount_b, bump = _LAYOUT.unpack(data)
    return Offer(
        id=offer_id,
        maker=encode_address(maker),
        asset_a=encode_address(asset_a),
        asset_b=encode_address(asset_b),
        amount_b_wanted=amount_b,
        authority_proof=bump,
    )
