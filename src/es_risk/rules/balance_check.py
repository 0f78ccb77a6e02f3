from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.errors import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InsufficientDepositFundsError,
)
from src.es_ledger.domain.repository import AssetLedgerProtocol


async def check_balance(
    ledger: AssetLedgerProtocol, account: str, amount: int, db: AsyncSession
) -> None:
    """The source account must exist and already hold `amount`."""
    existing = await ledger.get_account(db, account)
    if existing is None:
        raise AccountNotFoundError(account)
    if existing.balance < amount:
        raise InsufficientBalanceError(amount, existing.balance)


async def check_deposit_funds(
    ledger: AssetLedgerProtocol, payer: str, amount: int, db: AsyncSession
) -> None:
    """The payer's wallet must cover every storage deposit the operation will charge."""
    if amount == 0:
        return
    wallet = await ledger.get_wallet(db, payer)
    available = wallet.balance if wallet else 0
    if available < amount:
        raise InsufficientDepositFundsError(payer, amount, available)
