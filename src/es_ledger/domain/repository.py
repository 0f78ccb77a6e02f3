"""Asset ledger Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.enums import ConsentAction
from src.es_ledger.domain.authorization import Authorizer, UserAuthorization
from src.es_ledger.domain.models import Asset, LedgerReference, TokenAccount, Wallet


class AssetLedgerProtocol(Protocol):
    @property
    def token_account_deposit(self) -> int: ...

    def deposit_for(self, data_len: int) -> int: ...

    async def get_asset(self, db: AsyncSession, address: str) -> Asset | None: ...

    async def require_asset(self, db: AsyncSession, address: str) -> Asset: ...

    async def register_asset(
        self, db: AsyncSession, address: str, decimals: int
    ) -> Asset: ...

    async def get_account(self, db: AsyncSession, address: str) -> TokenAccount | None: ...

    async def get_balance(self, db: AsyncSession, address: str) -> int: ...

    async def get_wallet(self, db: AsyncSession, identity: str) -> Wallet | None: ...

    async def fund_wallet(self, db: AsyncSession, identity: str, amount: int) -> Wallet: ...

    async def charge_storage(
        self, db: AsyncSession, payer: str, amount: int, reference: LedgerReference
    ) -> Wallet: ...

    async def refund_storage(
        self, db: AsyncSession, recipient: str, amount: int, reference: LedgerReference
    ) -> Wallet: ...

    async def open_account(
        self,
        db: AsyncSession,
        address: str,
        asset: str,
        authority: str,
        authority_kind: str,
        payer: str,
        reference: LedgerReference,
    ) -> TokenAccount: ...

    async def ensure_associated_account(
        self,
        db: AsyncSession,
        owner: str,
        asset: str,
        payer: str,
        reference: LedgerReference,
    ) -> TokenAccount: ...

    async def mint_to(
        self, db: AsyncSession, asset: str, destination: str, amount: int
    ) -> TokenAccount: ...

    async def transfer_checked(
        self,
        db: AsyncSession,
        source: str,
        destination: str,
        amount: int,
        asset: str,
        decimals: int,
        authorizer: Authorizer,
        reference: LedgerReference,
    ) -> tuple[TokenAccount, TokenAccount]: ...

    async def close_account(
        self,
        db: AsyncSession,
        address: str,
        refund_to: str,
        authorizer: Authorizer,
        reference: LedgerReference,
    ) -> int: ...

    async def is_consent_spent(self, db: AsyncSession, consent: UserAuthorization) -> bool: ...

    async def spend_consent(
        self, db: AsyncSession, consent: UserAuthorization, action: ConsentAction
    ) -> None: ...
