"""Custody pairing check (INV-C): every offer has its vault, every vault its offer."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.enums import AuthorizerKind
from src.es_derivation.application.resolver import AddressResolver
from src.es_ledger.infrastructure.db_models import TokenAccountORM
from src.es_offer.domain.layout import decode_offer
from src.es_offer.infrastructure.db_models import OfferORM

logger = logging.getLogger(__name__)

_OFFERS = select(OfferORM.address, OfferORM.data)
_CUSTODY_ACCOUNTS = select(
    TokenAccountORM.address, TokenAccountORM.authority, TokenAccountORM.asset
).where(TokenAccountORM.authority_kind == AuthorizerKind.DERIVED.value)


async def verify_custody_pairing(db: AsyncSession, resolver: AddressResolver) -> list[str]:
    """Check INV-C. Returns list of violation strings."""
    violations: list[str] = []
    custody = {
        address: (authority, asset)
        for address, authority, asset in (await db.execute(_CUSTODY_ACCOUNTS)).all()
    }

    for address, data in (await db.execute(_OFFERS)).all():
        offer = decode_offer(data)
        vault = resolver.vault_address(address, offer.asset_a).address
        paired = custody.pop(vault, None)
        if paired is None:
            violations.append(f"INV-C violated: offer {address} has no vault {vault}")
        elif paired != (address, offer.asset_a):
            violations.append(
                f"INV-C violated: vault {vault} is bound to {paired}, not offer {address}"
            )

    for vault, (authority, _) in custody.items():
        violations.append(f"INV-C violated: vault {vault} has no live offer {authority}")

    for msg in violations:
        logger.error(msg)
    return violations
