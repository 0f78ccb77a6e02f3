"""LedgerQueryService — read-only views over accounts and wallets."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.amounts import units_to_display
from src.es_common.datetime_utils import to_iso
from src.es_common.errors import AccountNotFoundError
from src.es_derivation.domain.addresses import normalize_address
from src.es_ledger.application.schemas import TokenAccountResponse, WalletResponse
from src.es_ledger.domain.repository import AssetLedgerProtocol
from src.es_ledger.infrastructure.persistence import AssetLedger


class LedgerQueryService:
    def __init__(self, ledger: AssetLedgerProtocol | None = None) -> None:
        self._ledger: AssetLedgerProtocol = ledger or AssetLedger()

    async def get_account(self, db: AsyncSession, address: str) -> TokenAccountResponse:
        address = normalize_address(address)
        account = await self._ledger.get_account(db, address)
        if account is None:
            raise AccountNotFoundError(address)
        asset = await self._ledger.require_asset(db, account.asset)
        return TokenAccountResponse(
            address=account.address,
            asset=account.asset,
            authority=account.authority,
            authority_kind=account.authority_kind,
            balance=account.balance,
            balance_display=units_to_display(account.balance, asset.decimals),
            storage_deposit=account.storage_deposit,
            created_at=to_iso(account.created_at),
        )

    async def get_wallet(self, db: AsyncSession, identity: str) -> WalletResponse:
        """A wallet that was never funded reads as an empty one."""
        identity = normalize_address(identity)
        wallet = await self._ledger.get_wallet(db, identity)
        if wallet is None:
            return WalletResponse(identity=identity, balance=0)
        return WalletResponse(
            identity=wallet.identity,
            balance=wallet.balance,
            updated_at=to_iso(wallet.updated_at),
        )
