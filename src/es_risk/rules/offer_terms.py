from src.es_common.amounts import is_u64
from src.es_common.errors import InvalidAmountError, InvalidSeedsError


def check_offer_terms(offer_id: int, amount_a_offered: int, amount_b_wanted: int) -> None:
    """Offer id is any u64; both amounts are u64 and strictly positive."""
    if not is_u64(offer_id):
        raise InvalidSeedsError(f"offer id {offer_id} is not a u64")
    for field, value in (
        ("amount_a_offered", amount_a_offered),
        ("amount_b_wanted", amount_b_wanted),
    ):
        if not is_u64(value) or value == 0:
            raise InvalidAmountError(field, value)
