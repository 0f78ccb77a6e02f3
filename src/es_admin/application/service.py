# src/es_admin/application/service.py
"""Admin application service: asset registry, supply and wallet funding.

Setup operations that have no signer of their own. Each call is one
transaction, like the escrow operations.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.enums import ReferenceType
from src.es_derivation.application.resolver import AddressResolver
from src.es_derivation.domain.addresses import normalize_address
from src.es_ledger.domain.invariants import verify_ledger_invariants
from src.es_ledger.domain.models import LedgerReference
from src.es_ledger.domain.repository import AssetLedgerProtocol
from src.es_ledger.infrastructure.persistence import AssetLedger
from src.es_offer.domain.invariants import verify_custody_pairing

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        ledger: AssetLedgerProtocol | None = None,
        resolver: AddressResolver | None = None,
    ) -> None:
        self._resolver = resolver or AddressResolver()
        self._ledger: AssetLedgerProtocol = ledger or AssetLedger(self._resolver)

    async def register_asset(
        self, db: AsyncSession, address: str, decimals: int
    ) -> dict[str, Any]:
        try:
            asset = await self._ledger.register_asset(db, address, decimals)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return {"address": asset.address, "decimals": asset.decimals, "supply": asset.supply}

    async def mint(
        self, db: AsyncSession, asset: str, owner: str, amount: int
    ) -> dict[str, Any]:
        """Mint into the owner's associated account, opening it if needed.

        The owner's wallet pays the storage deposit of a new account.
        """
        asset = normalize_address(asset)
        owner = normalize_address(owner)
        reference = LedgerReference(ReferenceType.ADMIN.value, asset)
        try:
            account = await self._ledger.ensure_associated_account(
                db, owner, asset, owner, reference
            )
            account = await self._ledger.mint_to(db, asset, account.address, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Minted %d of %s to %s", amount, asset, account.address)
        return {"account": account.address, "balance": account.balance}

    async def fund_wallet(self, db: AsyncSession, identity: str, amount: int) -> dict[str, Any]:
        try:
            wallet = await self._ledger.fund_wallet(db, identity, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return {"identity": wallet.identity, "balance": wallet.balance}

    async def verify_all_invariants(self, db: AsyncSession) -> dict[str, object]:
        """Run the supply conservation and custody pairing checks."""
        violations = await verify_ledger_invariants(db)
        violations.extend(await verify_custody_pairing(db, self._resolver))
        return {"ok": len(violations) == 0, "violations": violations}
