"""EscrowService — the make / take / cancel state machine.

Each public operation is one transaction: every precondition is checked
first, then the mutations run in order, then a single commit. Any exception
rolls the whole unit back, so a vault and its offer are created together
and a swap never lands half-done.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.datetime_utils import to_iso
from src.es_common.enums import AuthorizerKind, ConsentAction, ReferenceType
from src.es_common.errors import (
    AccountExistsError,
    AccountNotFoundError,
    AssetMismatchError,
    DuplicateOfferError,
    OfferMismatchError,
)
from src.es_derivation.application.resolver import AddressResolver
from src.es_derivation.domain.addresses import normalize_address
from src.es_ledger.domain.authorization import DerivedAuthorization, UserAuthorization
from src.es_ledger.domain.models import LedgerReference
from src.es_ledger.domain.repository import AssetLedgerProtocol
from src.es_ledger.infrastructure.persistence import AssetLedger
from src.es_offer.application.schemas import (
    CancelOfferRequest,
    CancelOfferResponse,
    DerivedOfferAddressResponse,
    MakeOfferRequest,
    MakeOfferResponse,
    OfferResponse,
    TakeOfferRequest,
    TakeOfferResponse,
)
from src.es_offer.domain.consent import (
    cancel_offer_message,
    make_offer_message,
    take_offer_message,
)
from src.es_offer.domain.layout import OFFER_RECORD_LEN
from src.es_offer.domain.models import Offer, StoredOffer
from src.es_offer.domain.repository import OfferStoreProtocol
from src.es_offer.infrastructure.persistence import OfferStore
from src.es_risk.rules.authority_proof import check_authority_proof
from src.es_risk.rules.balance_check import check_balance, check_deposit_funds
from src.es_risk.rules.consent import check_consent, check_consent_unspent
from src.es_risk.rules.offer_exists import check_offer_absent, require_offer
from src.es_risk.rules.offer_match import check_is_maker, check_offer_matches
from src.es_risk.rules.offer_terms import check_offer_terms

logger = logging.getLogger(__name__)


class EscrowService:
    def __init__(
        self,
        store: OfferStoreProtocol | None = None,
        ledger: AssetLedgerProtocol | None = None,
        resolver: AddressResolver | None = None,
    ) -> None:
        self._resolver = resolver or AddressResolver()
        self._store: OfferStoreProtocol = store or OfferStore()
        self._ledger: AssetLedgerProtocol = ledger or AssetLedger(self._resolver)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _offer_authority(self, offer: Offer) -> DerivedAuthorization:
        """The vault's signer: the offer's seeds plus its stored bump."""
        seeds = self._resolver.offer_seeds(offer.maker, offer.id)
        return DerivedAuthorization(
            seeds=(*seeds, bytes([offer.authority_proof])),
            program_id=self._resolver.program_id,
        )

    def _vault_of(self, address: str, offer: Offer) -> str:
        return self._resolver.vault_address(address, offer.asset_a).address

    async def _missing_deposits(self, db: AsyncSession, *addresses: str) -> int:
        """Storage deposits needed to open whichever of `addresses` do not exist yet."""
        missing = 0
        for address in dict.fromkeys(addresses):
            if await self._ledger.get_account(db, address) is None:
                missing += 1
        return missing * self._ledger.token_account_deposit

    async def _check_payout_account(
        self,
        db: AsyncSession,
        address: str,
        owner: str,
        asset: str,
        field: str,
        required: bool,
    ) -> None:
        """An account the swap pays into or out of must belong to `owner` and hold `asset`.

        Associated accounts that do not exist yet are opened later in the
        same unit; accounts the caller named explicitly must already exist.
        """
        account = await self._ledger.get_account(db, address)
        if account is None:
            if required:
                raise AccountNotFoundError(address)
            return
        if account.authority != owner:
            raise OfferMismatchError(field)
        if account.asset != asset:
            raise AssetMismatchError(f"{field} {address} holds {account.asset}, not {asset}")

    async def _to_response(self, db: AsyncSession, stored: StoredOffer) -> OfferResponse:
        offer = stored.offer
        vault = self._vault_of(stored.address, offer)
        vault_account = await self._ledger.get_account(db, vault)
        return OfferResponse(
            address=stored.address,
            id=offer.id,
            maker=offer.maker,
            asset_a=offer.asset_a,
            asset_b=offer.asset_b,
            amount_b_wanted=offer.amount_b_wanted,
            authority_proof=offer.authority_proof,
            vault=vault,
            vault_balance=vault_account.balance if vault_account else 0,
            storage_deposit=stored.storage_deposit,
            created_at=to_iso(stored.created_at),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def derive_offer_address(self, maker: str, offer_id: int) -> DerivedOfferAddressResponse:
        derived = self._resolver.offer_address(normalize_address(maker), offer_id)
        return DerivedOfferAddressResponse(
            address=derived.address,
            authority_proof=derived.bump,
            maker=maker.lower(),
            offer_id=offer_id,
        )

    async def get_offer(self, db: AsyncSession, address: str) -> OfferResponse:
        stored = await require_offer(self._store, normalize_address(address), db)
        return await self._to_response(db, stored)

    # ------------------------------------------------------------------
    # Make
    # ------------------------------------------------------------------

    async def make_offer(self, db: AsyncSession, req: MakeOfferRequest) -> MakeOfferResponse:
        check_offer_terms(req.offer_id, req.amount_a_offered, req.amount_b_wanted)

        derived = self._resolver.offer_address(req.maker, req.offer_id)
        vault = self._resolver.vault_address(derived.address, req.asset_a)
        consent = UserAuthorization(
            identity=req.maker,
            signature=req.signature_bytes,
            message=make_offer_message(
                self._resolver.program_address,
                req.maker,
                req.offer_id,
                req.asset_a,
                req.asset_b,
                req.amount_a_offered,
                req.amount_b_wanted,
                req.nonce,
            ),
        )
        check_consent(consent)

        maker_account_a = self._resolver.associated_account(req.maker, req.asset_a)
        vault_deposit = self._ledger.token_account_deposit
        offer_deposit = self._ledger.deposit_for(OFFER_RECORD_LEN)
        reference = LedgerReference(ReferenceType.OFFER.value, derived.address)
        offer = Offer(
            id=req.offer_id,
            maker=req.maker,
            asset_a=req.asset_a,
            asset_b=req.asset_b,
            amount_b_wanted=req.amount_b_wanted,
            authority_proof=derived.bump,
        )

        try:
            asset_a = await self._ledger.require_asset(db, req.asset_a)
            await self._ledger.require_asset(db, req.asset_b)
            await check_offer_absent(self._store, derived.address, db)
            await check_consent_unspent(self._ledger, consent, db)
            await check_balance(self._ledger, maker_account_a, req.amount_a_offered, db)
            await check_deposit_funds(
                self._ledger, req.maker, vault_deposit + offer_deposit, db
            )

            # 1. custody account, owned by the (not yet persisted) offer address.
            # A make for the same (maker, id) that committed after the absence
            # check already holds this address.
            try:
                await self._ledger.open_account(
                    db,
                    vault.address,
                    req.asset_a,
                    derived.address,
                    AuthorizerKind.DERIVED.value,
                    req.maker,
                    reference,
                )
            except AccountExistsError as exc:
                raise DuplicateOfferError(derived.address) from exc
            await self._ledger.spend_consent(db, consent, ConsentAction.MAKE_OFFER)
            # 2. maker's asset A into custody, under the maker's consent proof
            await self._ledger.transfer_checked(
                db,
                maker_account_a,
                vault.address,
                req.amount_a_offered,
                asset_a.address,
                asset_a.decimals,
                consent,
                reference,
            )
            # 3. persist the record
            await self._ledger.charge_storage(db, req.maker, offer_deposit, reference)
            stored = await self._store.create(db, derived.address, offer, offer_deposit)
            response = MakeOfferResponse(
                offer=await self._to_response(db, stored),
                vault_storage_deposit=vault_deposit,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Offer made: %s maker=%s id=%d amount_a=%d amount_b=%d",
            derived.address, req.maker, req.offer_id,
            req.amount_a_offered, req.amount_b_wanted,
        )
        return response

    # ------------------------------------------------------------------
    # Take
    # ------------------------------------------------------------------

    async def take_offer(
        self, db: AsyncSession, address: str, req: TakeOfferRequest
    ) -> TakeOfferResponse:
        address = normalize_address(address)
        reference = LedgerReference(ReferenceType.OFFER.value, address)

        try:
            # locked until commit: a concurrent take waits here, then sees OfferNotFound
            stored = await require_offer(self._store, address, db, for_update=True)
            offer = stored.offer
            check_offer_matches(offer, req.maker, req.asset_a, req.asset_b)
            check_authority_proof(self._resolver, address, offer)
            consent = UserAuthorization(
                identity=req.taker,
                signature=req.signature_bytes,
                message=take_offer_message(
                    self._resolver.program_address, address, offer, req.taker, req.nonce
                ),
            )
            check_consent(consent)
            await check_consent_unspent(self._ledger, consent, db)

            asset_a = await self._ledger.require_asset(db, offer.asset_a)
            asset_b = await self._ledger.require_asset(db, offer.asset_b)
            vault = self._vault_of(address, offer)
            taker_b = req.taker_account_b or self._resolver.associated_account(
                req.taker, offer.asset_b
            )
            taker_a = req.taker_account_a or self._resolver.associated_account(
                req.taker, offer.asset_a
            )
            maker_b = req.maker_account_b or self._resolver.associated_account(
                offer.maker, offer.asset_b
            )
            await check_balance(self._ledger, taker_b, offer.amount_b_wanted, db)
            await self._check_payout_account(
                db, taker_b, req.taker, offer.asset_b, "taker_account_b", required=True
            )
            await self._check_payout_account(
                db, taker_a, req.taker, offer.asset_a, "taker_account_a",
                required=req.taker_account_a is not None,
            )
            await self._check_payout_account(
                db, maker_b, offer.maker, offer.asset_b, "maker_account_b",
                required=req.maker_account_b is not None,
            )
            # associated destinations are opened on the fly, at the taker's expense
            to_open = [
                account
                for account, explicit in (
                    (taker_a, req.taker_account_a),
                    (maker_b, req.maker_account_b),
                )
                if explicit is None
            ]
            await check_deposit_funds(
                self._ledger, req.taker, await self._missing_deposits(db, *to_open), db
            )

            # destination accounts the taker funds if they do not exist yet
            if req.taker_account_a is None:
                await self._ledger.ensure_associated_account(
                    db, req.taker, offer.asset_a, req.taker, reference
                )
            if req.maker_account_b is None:
                await self._ledger.ensure_associated_account(
                    db, offer.maker, offer.asset_b, req.taker, reference
                )

            await self._ledger.spend_consent(db, consent, ConsentAction.TAKE_OFFER)
            # 1. asset B: taker -> maker, under the taker's consent proof
            await self._ledger.transfer_checked(
                db,
                taker_b,
                maker_b,
                offer.amount_b_wanted,
                asset_b.address,
                asset_b.decimals,
                consent,
                reference,
            )
            # 2. whole live vault balance: vault -> taker, under the offer's seeds
            authority = self._offer_authority(offer)
            escrowed = await self._ledger.get_balance(db, vault)
            await self._ledger.transfer_checked(
                db,
                vault,
                taker_a,
                escrowed,
                asset_a.address,
                asset_a.decimals,
                authority,
                reference,
            )
            # 3. vault deposit to the taker
            vault_refund = await self._ledger.close_account(
                db, vault, req.taker, authority, reference
            )
            # 4. record deposit to the maker
            consumed = await self._store.consume(db, address)
            await self._ledger.refund_storage(
                db, offer.maker, consumed.storage_deposit, reference
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Offer taken: %s taker=%s amount_a=%d amount_b=%d",
            address, req.taker, escrowed, offer.amount_b_wanted,
        )
        return TakeOfferResponse(
            offer_address=address,
            maker=offer.maker,
            taker=req.taker,
            amount_a_received=escrowed,
            amount_b_paid=offer.amount_b_wanted,
            vault_deposit_refunded=vault_refund,
            offer_deposit_refunded=consumed.storage_deposit,
        )

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    async def cancel_offer(
        self, db: AsyncSession, address: str, req: CancelOfferRequest
    ) -> CancelOfferResponse:
        """Maker withdraws: escrowed A and both deposits go back to the maker."""
        address = normalize_address(address)
        consent = UserAuthorization(
            identity=req.maker,
            signature=req.signature_bytes,
            message=cancel_offer_message(
                self._resolver.program_address, address, req.maker, req.nonce
            ),
        )
        reference = LedgerReference(ReferenceType.OFFER.value, address)

        try:
            stored = await require_offer(self._store, address, db, for_update=True)
            offer = stored.offer
            check_is_maker(offer, req.maker)
            check_authority_proof(self._resolver, address, offer)
            check_consent(consent)
            await check_consent_unspent(self._ledger, consent, db)

            asset_a = await self._ledger.require_asset(db, offer.asset_a)
            vault = self._vault_of(address, offer)
            maker_a = self._resolver.associated_account(offer.maker, offer.asset_a)
            await check_deposit_funds(
                self._ledger, offer.maker, await self._missing_deposits(db, maker_a), db
            )

            await self._ledger.spend_consent(db, consent, ConsentAction.CANCEL_OFFER)
            await self._ledger.ensure_associated_account(
                db, offer.maker, offer.asset_a, offer.maker, reference
            )
            authority = self._offer_authority(offer)
            escrowed = await self._ledger.get_balance(db, vault)
            await self._ledger.transfer_checked(
                db,
                vault,
                maker_a,
                escrowed,
                asset_a.address,
                asset_a.decimals,
                authority,
                reference,
            )
            vault_refund = await self._ledger.close_account(
                db, vault, offer.maker, authority, reference
            )
            consumed = await self._store.consume(db, address)
            await self._ledger.refund_storage(
                db, offer.maker, consumed.storage_deposit, reference
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Offer cancelled: %s maker=%s amount_a=%d", address, offer.maker, escrowed)
        return CancelOfferResponse(
            offer_address=address,
            maker=offer.maker,
            amount_a_returned=escrowed,
            vault_deposit_refunded=vault_refund,
            offer_deposit_refunded=consumed.storage_deposit,
        )


_service: EscrowService | None = None


def get_escrow_service() -> EscrowService:
    global _service  # noqa: PLW0603
    if _service is None:
        _service = EscrowService()
    return _service
