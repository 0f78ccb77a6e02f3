from src.es_common.errors import InvalidAuthorityProofError
from src.es_derivation.application.resolver import AddressResolver
from src.es_offer.domain.models import Offer


def check_authority_proof(resolver: AddressResolver, address: str, offer: Offer) -> None:
    """(maker, id, authority_proof) must re-derive exactly the address acted upon."""
    if not resolver.verify_offer_authority(address, offer.maker, offer.id, offer.authority_proof):
        raise InvalidAuthorityProofError(address)
