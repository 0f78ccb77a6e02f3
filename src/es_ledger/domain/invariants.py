"""Ledger-wide conservation check (INV-L)."""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.es_ledger.infrastructure.db_models import AssetORM, TokenAccountORM

logger = logging.getLogger(__name__)

_BALANCES_BY_ASSET = (
    select(TokenAccountORM.asset, func.coalesce(func.sum(TokenAccountORM.balance), 0))
    .group_by(TokenAccountORM.asset)
)
_SUPPLIES = select(AssetORM.address, AssetORM.supply)
_NEGATIVE = select(TokenAccountORM.address, TokenAccountORM.balance).where(
    TokenAccountORM.balance < 0
)


async def verify_ledger_invariants(db: AsyncSession) -> list[str]:
    """Check INV-L: for every asset, sum(account balances) == supply.

    Transfers never create or destroy units, so only mint changes supply.
    Returns list of violation strings.
    """
    violations: list[str] = []
    held = {asset: int(total) for asset, total in (await db.execute(_BALANCES_BY_ASSET)).all()}
    for asset, supply in (await db.execute(_SUPPLIES)).all():
        total = held.pop(asset, 0)
        if total != supply:
            violations.append(
                f"INV-L violated: asset {asset} balances({total}) != supply({supply})"
            )
    for asset, total in held.items():
        violations.append(f"INV-L violated: {total} units held of unregistered asset {asset}")
    for address, balance in (await db.execute(_NEGATIVE)).all():
        violations.append(f"INV-L violated: account {address} balance {balance} < 0")

    for msg in violations:
        logger.error(msg)
    return violations
