"""AssetLedger — concrete implementation of AssetLedgerProtocol.

Every balance-mutating operation loads its rows with SELECT ... FOR UPDATE,
validates, mutates, and journals into ledger_entries. Rows are locked in
address order so two transfers touching the same pair cannot deadlock.

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back. Nothing here commits.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.es_common.amounts import LEDGER_BALANCE_MAX, storage_deposit
from src.es_common.enums import AuthorizerKind, ConsentAction, LedgerEntryType, ReferenceType
from src.es_common.errors import (
    AccountExistsError,
    AccountNotEmptyError,
    AccountNotFoundError,
    AssetMismatchError,
    AssetNotFoundError,
    BalanceOverflowError,
    ConsentReplayedError,
    InsufficientBalanceError,
    InsufficientDepositFundsError,
    InvalidAmountError,
    InvalidConsentProofError,
    UnauthorizedCloseError,
    UnauthorizedTransferError,
)
from src.es_derivation.application.resolver import AddressResolver
from src.es_derivation.domain.addresses import normalize_address
from src.es_ledger.domain.authorization import Authorizer, UserAuthorization
from src.es_ledger.domain.models import Asset, LedgerReference, TokenAccount, Wallet
from src.es_ledger.infrastructure.db_models import (
    AssetORM,
    LedgerEntryORM,
    SpentConsentORM,
    TokenAccountORM,
    WalletORM,
)

logger = logging.getLogger(__name__)

TOKEN_ACCOUNT_DATA_LEN = 165


def _orm_to_asset(orm: AssetORM) -> Asset:
    return Asset(
        address=orm.address,
        decimals=orm.decimals,
        supply=orm.supply,
        created_at=orm.created_at,
    )


def _orm_to_account(orm: TokenAccountORM) -> TokenAccount:
    return TokenAccount(
        address=orm.address,
        asset=orm.asset,
        authority=orm.authority,
        authority_kind=orm.authority_kind,
        balance=orm.balance,
        storage_deposit=orm.storage_deposit,
        created_at=orm.created_at,
    )


def _orm_to_wallet(orm: WalletORM) -> Wallet:
    return Wallet(
        identity=orm.identity,
        balance=orm.balance,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


def _transfer_denied(authorizer: Authorizer, account: TokenAccountORM) -> Exception:
    # A key holder naming the right authority but with a bad signature gets the
    # consent error; anyone else is simply not the authority.
    identity = getattr(authorizer, "identity", None)
    if authorizer.kind == AuthorizerKind.USER and identity == account.authority:
        return InvalidConsentProofError(account.authority)
    return UnauthorizedTransferError(account.address)


class AssetLedger:
    """Concrete ledger — the only code that touches balances."""

    def __init__(self, resolver: AddressResolver | None = None) -> None:
        self._resolver = resolver or AddressResolver()

    @property
    def token_account_deposit(self) -> int:
        return self.deposit_for(TOKEN_ACCOUNT_DATA_LEN)

    @staticmethod
    def deposit_for(data_len: int) -> int:
        return storage_deposit(
            data_len,
            settings.STORAGE_OVERHEAD_BYTES,
            settings.DEPOSIT_PER_BYTE,
            settings.DEPOSIT_MULTIPLIER,
        )

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    async def _lock_account(self, db: AsyncSession, address: str) -> TokenAccountORM:
        result = await db.execute(
            select(TokenAccountORM)
            .where(TokenAccountORM.address == address)
            .with_for_update()
        )
        orm = result.scalar_one_or_none()
        if orm is None:
            raise AccountNotFoundError(address)
        return orm

    async def _lock_wallet(self, db: AsyncSession, identity: str) -> WalletORM | None:
        result = await db.execute(
            select(WalletORM).where(WalletORM.identity == identity).with_for_update()
        )
        return result.scalar_one_or_none()

    async def _lock_asset(self, db: AsyncSession, address: str) -> AssetORM:
        result = await db.execute(
            select(AssetORM).where(AssetORM.address == address).with_for_update()
        )
        orm = result.scalar_one_or_none()
        if orm is None:
            raise AssetNotFoundError(address)
        return orm

    def _journal(
        self,
        db: AsyncSession,
        account: str,
        entry_type: LedgerEntryType,
        amount: int,
        balance_after: int,
        reference: LedgerReference | None,
    ) -> None:
        db.add(
            LedgerEntryORM(
                account=account,
                entry_type=entry_type.value,
                amount=amount,
                balance_after=balance_after,
                reference_type=reference.type if reference else None,
                reference_id=reference.id if reference else None,
            )
        )

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def get_asset(self, db: AsyncSession, address: str) -> Asset | None:
        result = await db.execute(select(AssetORM).where(AssetORM.address == address))
        orm = result.scalar_one_or_none()
        return _orm_to_asset(orm) if orm else None

    async def require_asset(self, db: AsyncSession, address: str) -> Asset:
        asset = await self.get_asset(db, address)
        if asset is None:
            raise AssetNotFoundError(address)
        return asset

    async def register_asset(self, db: AsyncSession, address: str, decimals: int) -> Asset:
        address = normalize_address(address)
        if not 0 <= decimals <= 18:
            raise AssetMismatchError(f"decimals {decimals} out of range 0..18")
        if await self.get_asset(db, address) is not None:
            raise AccountExistsError(address)
        orm = AssetORM(address=address, decimals=decimals, supply=0)
        db.add(orm)
        await db.flush()
        logger.info("Asset registered: %s decimals=%d", address, decimals)
        return _orm_to_asset(orm)

    # ------------------------------------------------------------------
    # Token accounts
    # ------------------------------------------------------------------

    async def get_account(self, db: AsyncSession, address: str) -> TokenAccount | None:
        result = await db.execute(
            select(TokenAccountORM).where(TokenAccountORM.address == address)
        )
        orm = result.scalar_one_or_none()
        return _orm_to_account(orm) if orm else None

    async def get_balance(self, db: AsyncSession, address: str) -> int:
        """Live balance, read under the row lock for the rest of the transaction."""
        orm = await self._lock_account(db, address)
        return orm.balance

    async def open_account(
        self,
        db: AsyncSession,
        address: str,
        asset: str,
        authority: str,
        authority_kind: str,
        payer: str,
        reference: LedgerReference,
    ) -> TokenAccount:
        """Create an empty token account, charging its storage deposit to `payer`."""
        await self.require_asset(db, asset)
        if await self.get_account(db, address) is not None:
            raise AccountExistsError(address)

        deposit = self.token_account_deposit
        await self.charge_storage(db, payer, deposit, reference)

        orm = TokenAccountORM(
            address=address,
            asset=asset,
            authority=authority,
            authority_kind=authority_kind,
            balance=0,
            storage_deposit=deposit,
        )
        db.add(orm)
        self._journal(db, address, LedgerEntryType.ACCOUNT_OPEN, 0, 0, reference)
        try:
            await db.flush()
        except IntegrityError as exc:
            # a concurrent transaction opened the same address first
            raise AccountExistsError(address) from exc
        logger.debug("Account opened: %s asset=%s authority=%s", address, asset, authority)
        return _orm_to_account(orm)

    async def ensure_associated_account(
        self,
        db: AsyncSession,
        owner: str,
        asset: str,
        payer: str,
        reference: LedgerReference,
    ) -> TokenAccount:
        """Return the owner's associated account for `asset`, creating it if missing."""
        address = self._resolver.associated_account(owner, asset)
        existing = await self.get_account(db, address)
        if existing is not None:
            return existing
        return await self.open_account(
            db, address, asset, owner, AuthorizerKind.USER.value, payer, reference
        )

    async def mint_to(
        self, db: AsyncSession, asset: str, destination: str, amount: int
    ) -> TokenAccount:
        if amount <= 0:
            raise InvalidAmountError("mint", amount)
        asset_orm = await self._lock_asset(db, asset)
        account = await self._lock_account(db, destination)
        if account.asset != asset:
            raise AssetMismatchError(f"account {destination} holds {account.asset}")
        if account.balance + amount > LEDGER_BALANCE_MAX:
            raise BalanceOverflowError(destination)

        asset_orm.supply += amount
        account.balance += amount
        self._journal(
            db, destination, LedgerEntryType.MINT, amount, account.balance,
            LedgerReference(ReferenceType.ADMIN.value, asset),
        )
        await db.flush()
        return _orm_to_account(account)

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
    ) -> tuple[TokenAccount, TokenAccount]:
        """Move `amount` of `asset` from source to destination.

        Checks, in order: asset precision, both accounts hold `asset`,
        authorizer controls the source, source covers the amount, the
        destination stays within the column range.
        """
        asset_row = await self.require_asset(db, asset)
        if asset_row.decimals != decimals:
            raise AssetMismatchError(
                f"asset {asset} has {asset_row.decimals} decimals, caller declared {decimals}"
            )

        first, second = sorted({source, destination})
        locked = {first: await self._lock_account(db, first)}
        if second != first:
            locked[second] = await self._lock_account(db, second)
        src, dst = locked[source], locked[destination]

        for orm in (src, dst):
            if orm.asset != asset:
                raise AssetMismatchError(f"account {orm.address} holds {orm.asset}, not {asset}")
        if not authorizer.authorizes(src.authority):
            raise _transfer_denied(authorizer, src)
        if src.balance < amount:
            raise InsufficientBalanceError(amount, src.balance)

        if src is not dst:
            if dst.balance + amount > LEDGER_BALANCE_MAX:
                raise BalanceOverflowError(dst.address)
            src.balance -= amount
            dst.balance += amount
        self._journal(
            db, src.address, LedgerEntryType.TRANSFER_OUT, -amount, src.balance, reference
        )
        self._journal(
            db, dst.address, LedgerEntryType.TRANSFER_IN, amount, dst.balance, reference
        )
        await db.flush()

        logger.debug(
            "Transfer: %d of %s from %s to %s (%s)",
            amount, asset, source, destination, authorizer.kind.value,
        )
        return _orm_to_account(src), _orm_to_account(dst)

    async def close_account(
        self,
        db: AsyncSession,
        address: str,
        refund_to: str,
        authorizer: Authorizer,
        reference: LedgerReference,
    ) -> int:
        """Delete an empty account and credit its storage deposit to `refund_to`.

        Returns the refunded deposit.
        """
        orm = await self._lock_account(db, address)
        if orm.balance > 0:
            raise AccountNotEmptyError(address, orm.balance)
        if not authorizer.authorizes(orm.authority):
            raise UnauthorizedCloseError(address)

        deposit = orm.storage_deposit
        self._journal(db, address, LedgerEntryType.ACCOUNT_CLOSE, 0, 0, reference)
        await db.delete(orm)
        await db.flush()
        await self.refund_storage(db, refund_to, deposit, reference)
        logger.debug("Account closed: %s deposit %d -> %s", address, deposit, refund_to)
        return deposit

    # ------------------------------------------------------------------
    # Wallets (storage deposits)
    # ------------------------------------------------------------------

    async def get_wallet(self, db: AsyncSession, identity: str) -> Wallet | None:
        result = await db.execute(select(WalletORM).where(WalletORM.identity == identity))
        orm = result.scalar_one_or_none()
        return _orm_to_wallet(orm) if orm else None

    async def _credit_wallet(
        self,
        db: AsyncSession,
        identity: str,
        amount: int,
        entry_type: LedgerEntryType,
        reference: LedgerReference | None,
    ) -> Wallet:
        orm = await self._lock_wallet(db, identity)
        if orm is None:
            orm = WalletORM(identity=identity, balance=0)
            db.add(orm)
        if orm.balance + amount > LEDGER_BALANCE_MAX:
            raise BalanceOverflowError(identity)
        orm.balance += amount
        self._journal(db, identity, entry_type, amount, orm.balance, reference)
        await db.flush()
        return _orm_to_wallet(orm)

    async def fund_wallet(self, db: AsyncSession, identity: str, amount: int) -> Wallet:
        identity = normalize_address(identity)
        if amount <= 0:
            raise InvalidAmountError("fund", amount)
        return await self._credit_wallet(
            db, identity, amount, LedgerEntryType.WALLET_FUND,
            LedgerReference(ReferenceType.ADMIN.value, identity),
        )

    async def charge_storage(
        self, db: AsyncSession, payer: str, amount: int, reference: LedgerReference
    ) -> Wallet:
        orm = await self._lock_wallet(db, payer)
        available = orm.balance if orm else 0
        if orm is None or orm.balance < amount:
            raise InsufficientDepositFundsError(payer, amount, available)
        orm.balance -= amount
        self._journal(
            db, payer, LedgerEntryType.DEPOSIT_CHARGE, -amount, orm.balance, reference
        )
        await db.flush()
        return _orm_to_wallet(orm)

    async def refund_storage(
        self, db: AsyncSession, recipient: str, amount: int, reference: LedgerReference
    ) -> Wallet:
        return await self._credit_wallet(
            db, recipient, amount, LedgerEntryType.DEPOSIT_REFUND, reference
        )

    # ------------------------------------------------------------------
    # Consent proofs (single use)
    # ------------------------------------------------------------------

    async def is_consent_spent(self, db: AsyncSession, consent: UserAuthorization) -> bool:
        result = await db.execute(
            select(SpentConsentORM.digest).where(SpentConsentORM.digest == consent.digest)
        )
        return result.scalar_one_or_none() is not None

    async def spend_consent(
        self, db: AsyncSession, consent: UserAuthorization, action: ConsentAction
    ) -> None:
        """Record `consent` as used; the same approval is refused from then on."""
        if await self.is_consent_spent(db, consent):
            raise ConsentReplayedError(consent.identity)
        db.add(
            SpentConsentORM(
                digest=consent.digest, identity=consent.identity, action=action.value
            )
        )
        try:
            await db.flush()
        except IntegrityError as exc:
            raise ConsentReplayedError(consent.identity) from exc
