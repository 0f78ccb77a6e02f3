"""Unit tests for EscrowService using mock store and ledger.

Every rejection must happen before the first ledger or store mutation.
"""

from collections.abc import Callable
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.es_common.enums import ConsentAction
from src.es_common.errors import (
    AccountExistsError,
    AccountNotFoundError,
    ConsentReplayedError,
    DuplicateOfferError,
    InsufficientBalanceError,
    InsufficientDepositFundsError,
    InvalidAmountError,
    InvalidAuthorityProofError,
    InvalidConsentProofError,
    OfferMismatchError,
    OfferNotFoundError,
)
from src.es_derivation.application.resolver import AddressResolver
from src.es_ledger.domain.authorization import UserAuthorization
from src.es_ledger.domain.models import Asset, TokenAccount, Wallet
from src.es_offer.application.schemas import MakeOfferResponse
from src.es_offer.application.service import EscrowService
from src.es_offer.domain.models import Offer, StoredOffer

ASSET_A = "a1" * 32
ASSET_B = "b2" * 32
VAULT_DEPOSIT = 2_039_280
OFFER_DEPOSIT = 1_740_000


def _ledger(balance: int = 5_000_000, wallet: int = 100_000_000) -> AsyncMock:
    ledger = AsyncMock()
    ledger.token_account_deposit = VAULT_DEPOSIT
    ledger.deposit_for = MagicMock(return_value=OFFER_DEPOSIT)
    ledger.require_asset.side_effect = lambda db, address: Asset(
        address=address, decimals=6, supply=0
    )
    ledger.get_account.return_value = TokenAccount(
        address="00" * 32, asset=ASSET_A, authority="00" * 32,
        authority_kind="USER", balance=balance, storage_deposit=VAULT_DEPOSIT,
    )
    ledger.get_wallet.return_value = Wallet(identity="00" * 32, balance=wallet)
    ledger.is_consent_spent.return_value = False
    return ledger


def _store(exists: bool = False, stored: StoredOffer | None = None) -> AsyncMock:
    store = AsyncMock()
    store.exists.return_value = exists
    store.get.return_value = stored
    store.create.side_effect = lambda db, address, offer, deposit: StoredOffer(
        address=address, offer=offer, storage_deposit=deposit
    )
    return store


def _assert_untouched(ledger: AsyncMock, store: AsyncMock) -> None:
    ledger.spend_consent.assert_not_awaited()
    ledger.open_account.assert_not_awaited()
    ledger.transfer_checked.assert_not_awaited()
    ledger.charge_storage.assert_not_awaited()
    ledger.close_account.assert_not_awaited()
    store.create.assert_not_awaited()
    store.consume.assert_not_awaited()


class TestMakeOffer:
    async def test_escrows_and_persists(
        self, resolver: AddressResolver, maker, make_request: Callable
    ) -> None:
        ledger, store, db = _ledger(), _store(), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)

        result = await svc.make_offer(db, make_request(offer_id=42, amount_a=1_000_000))

        derived = resolver.offer_address(maker.identity, 42)
        vault = resolver.vault_address(derived.address, ASSET_A).address
        assert isinstance(result, MakeOfferResponse)
        assert result.offer.address == derived.address
        assert result.offer.authority_proof == derived.bump
        assert result.offer.vault == vault
        assert result.vault_storage_deposit == VAULT_DEPOSIT

        open_args = ledger.open_account.await_args.args
        assert open_args[1:6] == (vault, ASSET_A, derived.address, "DERIVED", maker.identity)

        transfer_args = ledger.transfer_checked.await_args.args
        assert transfer_args[1] == resolver.associated_account(maker.identity, ASSET_A)
        assert transfer_args[2] == vault
        assert transfer_args[3] == 1_000_000
        assert isinstance(transfer_args[6], UserAuthorization)

        ledger.charge_storage.assert_awaited_once()
        assert ledger.charge_storage.await_args.args[2] == OFFER_DEPOSIT
        store.create.assert_awaited_once()
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    async def test_zero_amount_rejected(self, resolver: AddressResolver, make_request) -> None:
        ledger, store, db = _ledger(), _store(), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(InvalidAmountError):
            await svc.make_offer(db, make_request(amount_a=0))
        _assert_untouched(ledger, store)

    async def test_foreign_signature_rejected(
        self, resolver: AddressResolver, taker, make_request
    ) -> None:
        ledger, store, db = _ledger(), _store(), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(InvalidConsentProofError):
            await svc.make_offer(db, make_request(signer=taker))
        _assert_untouched(ledger, store)
        db.commit.assert_not_awaited()

    async def test_duplicate_rejected(self, resolver: AddressResolver, make_request) -> None:
        ledger, store, db = _ledger(), _store(exists=True), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(DuplicateOfferError):
            await svc.make_offer(db, make_request())
        _assert_untouched(ledger, store)
        db.rollback.assert_awaited_once()

    async def test_insufficient_balance_rejected(
        self, resolver: AddressResolver, make_request
    ) -> None:
        ledger, store, db = _ledger(balance=999_999), _store(), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(InsufficientBalanceError):
            await svc.make_offer(db, make_request(amount_a=1_000_000))
        _assert_untouched(ledger, store)

    async def test_deposits_must_be_covered(
        self, resolver: AddressResolver, make_request
    ) -> None:
        ledger = _ledger(wallet=VAULT_DEPOSIT + OFFER_DEPOSIT - 1)
        store, db = _store(), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(InsufficientDepositFundsError):
            await svc.make_offer(db, make_request())
        _assert_untouched(ledger, store)

    async def test_failure_after_mutation_rolls_back(
        self, resolver: AddressResolver, make_request
    ) -> None:
        ledger, store, db = _ledger(), _store(), AsyncMock()
        store.create.side_effect = DuplicateOfferError("raced")
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(DuplicateOfferError):
            await svc.make_offer(db, make_request())
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_vault_already_opened_is_duplicate(
        self, resolver: AddressResolver, maker, make_request
    ) -> None:
        # a make for the same id committed between the absence check and the vault insert
        ledger, store, db = _ledger(), _store(exists=False), AsyncMock()
        ledger.open_account.side_effect = AccountExistsError("vault")
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(DuplicateOfferError) as exc_info:
            await svc.make_offer(db, make_request(offer_id=42))
        assert exc_info.value.code == 3001
        assert resolver.offer_address(maker.identity, 42).address in exc_info.value.message
        ledger.transfer_checked.assert_not_awaited()
        store.create.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_spent_consent_rejected(self, resolver: AddressResolver, make_request) -> None:
        ledger, store, db = _ledger(), _store(), AsyncMock()
        ledger.is_consent_spent.return_value = True
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(ConsentReplayedError):
            await svc.make_offer(db, make_request())
        _assert_untouched(ledger, store)

    async def test_consent_spent_with_the_make(
        self, resolver: AddressResolver, maker, make_request
    ) -> None:
        ledger, store, db = _ledger(), _store(), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        await svc.make_offer(db, make_request())
        spent, action = ledger.spend_consent.await_args.args[1:]
        assert spent.identity == maker.identity
        assert action == ConsentAction.MAKE_OFFER


class TestTakeOffer:
    def _stored(self, resolver: AddressResolver, maker_identity: str) -> StoredOffer:
        derived = resolver.offer_address(maker_identity, 42)
        offer = Offer(
            id=42, maker=maker_identity, asset_a=ASSET_A, asset_b=ASSET_B,
            amount_b_wanted=1_000_000, authority_proof=derived.bump,
        )
        return StoredOffer(address=derived.address, offer=offer, storage_deposit=OFFER_DEPOSIT)

    async def test_missing_offer(
        self, resolver: AddressResolver, maker, take_request
    ) -> None:
        gone = self._stored(resolver, maker.identity)
        ledger, store, db = _ledger(), _store(stored=None), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(OfferNotFoundError):
            await svc.take_offer(db, gone.address, take_request(gone))
        _assert_untouched(ledger, store)

    async def test_offer_read_under_lock(
        self, resolver: AddressResolver, maker, take_request
    ) -> None:
        gone = self._stored(resolver, maker.identity)
        ledger, store, db = _ledger(), _store(stored=None), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(OfferNotFoundError):
            await svc.take_offer(db, gone.address, take_request(gone))
        store.get.assert_awaited_once_with(db, gone.address, for_update=True)

    async def test_signature_bound_to_stored_terms(
        self, resolver: AddressResolver, maker, take_request
    ) -> None:
        signed_for = self._stored(resolver, maker.identity)
        relisted = replace(signed_for.offer, amount_b_wanted=4_000_000)
        stored = StoredOffer(
            address=signed_for.address, offer=relisted, storage_deposit=OFFER_DEPOSIT
        )
        ledger, store, db = _ledger(), _store(stored=stored), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(InvalidConsentProofError):
            await svc.take_offer(db, stored.address, take_request(signed_for))
        _assert_untouched(ledger, store)

    async def test_spent_consent_rejected(
        self, resolver: AddressResolver, maker, take_request
    ) -> None:
        stored = self._stored(resolver, maker.identity)
        ledger, store, db = _ledger(), _store(stored=stored), AsyncMock()
        ledger.is_consent_spent.return_value = True
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(ConsentReplayedError):
            await svc.take_offer(db, stored.address, take_request(stored))
        _assert_untouched(ledger, store)

    async def test_named_payout_account_must_exist(
        self, resolver: AddressResolver, maker, taker, take_request
    ) -> None:
        stored = self._stored(resolver, maker.identity)
        taker_b = resolver.associated_account(taker.identity, ASSET_B)
        funded_b = TokenAccount(
            address=taker_b, asset=ASSET_B, authority=taker.identity,
            authority_kind="USER", balance=5_000_000, storage_deposit=VAULT_DEPOSIT,
        )
        ledger, store, db = _ledger(), _store(stored=stored), AsyncMock()
        ledger.get_account.side_effect = lambda db, address: (
            funded_b if address == taker_b else None
        )
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(AccountNotFoundError):
            await svc.take_offer(
                db, stored.address, take_request(stored, taker_account_a="99" * 32)
            )
        _assert_untouched(ledger, store)
        ledger.ensure_associated_account.assert_not_awaited()

    async def test_terms_must_match(
        self, resolver: AddressResolver, maker, take_request
    ) -> None:
        stored = self._stored(resolver, maker.identity)
        ledger, store, db = _ledger(), _store(stored=stored), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(OfferMismatchError, match="asset_b"):
            await svc.take_offer(
                db, stored.address, take_request(stored, asset_b="ee" * 32)
            )
        _assert_untouched(ledger, store)

    async def test_forged_authority_proof(
        self, resolver: AddressResolver, maker, take_request
    ) -> None:
        stored = self._stored(resolver, maker.identity)
        stored.offer = replace(stored.offer, authority_proof=stored.offer.authority_proof - 1)
        ledger, store, db = _ledger(), _store(stored=stored), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(InvalidAuthorityProofError):
            await svc.take_offer(db, stored.address, take_request(stored))
        _assert_untouched(ledger, store)

    async def test_taker_must_consent(
        self, resolver: AddressResolver, maker, take_request
    ) -> None:
        stored = self._stored(resolver, maker.identity)
        ledger, store, db = _ledger(), _store(stored=stored), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(InvalidConsentProofError):
            await svc.take_offer(db, stored.address, take_request(stored, signer=maker))
        _assert_untouched(ledger, store)

    async def test_taker_short_of_asset_b(
        self, resolver: AddressResolver, maker, take_request
    ) -> None:
        stored = self._stored(resolver, maker.identity)
        ledger, store, db = _ledger(balance=10), _store(stored=stored), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(InsufficientBalanceError):
            await svc.take_offer(db, stored.address, take_request(stored))
        _assert_untouched(ledger, store)


class TestCancelOffer:
    async def test_only_maker(
        self, resolver: AddressResolver, maker, taker, cancel_request
    ) -> None:
        derived = resolver.offer_address(maker.identity, 1)
        stored = StoredOffer(
            address=derived.address,
            offer=Offer(
                id=1, maker=maker.identity, asset_a=ASSET_A, asset_b=ASSET_B,
                amount_b_wanted=5, authority_proof=derived.bump,
            ),
            storage_deposit=OFFER_DEPOSIT,
        )
        ledger, store, db = _ledger(), _store(stored=stored), AsyncMock()
        svc = EscrowService(store=store, ledger=ledger, resolver=resolver)
        with pytest.raises(OfferMismatchError, match="maker"):
            await svc.cancel_offer(db, derived.address, cancel_request(derived.address, taker))
        _assert_untouched(ledger, store)
        store.get.assert_awaited_once_with(db, derived.address, for_update=True)


class TestDeriveOfferAddress:
    def test_matches_resolver(self, resolver: AddressResolver) -> None:
        svc = EscrowService(store=AsyncMock(), ledger=_ledger(), resolver=resolver)
        result = svc.derive_offer_address("AB" * 32, 7)
        derived = resolver.offer_address("ab" * 32, 7)
        assert result.address == derived.address
        assert result.authority_proof == derived.bump
        assert result.maker == "ab" * 32
