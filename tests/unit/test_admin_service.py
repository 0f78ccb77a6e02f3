"""Unit tests for AdminService using a mock ledger."""

from unittest.mock import AsyncMock

import pytest

from src.es_admin.application.service import AdminService
from src.es_common.errors import AssetNotFoundError, InvalidAmountError
from src.es_derivation.application.resolver import AddressResolver
from src.es_ledger.domain.models import Asset, TokenAccount, Wallet

ASSET = "c3" * 32
OWNER = "77" * 32


def _account(balance: int) -> TokenAccount:
    return TokenAccount(
        address="88" * 32, asset=ASSET, authority=OWNER, authority_kind="USER",
        balance=balance, storage_deposit=2_039_280,
    )


class TestRegisterAsset:
    async def test_commits(self, resolver: AddressResolver) -> None:
        ledger, db = AsyncMock(), AsyncMock()
        ledger.register_asset.return_value = Asset(address=ASSET, decimals=6, supply=0)

        result = await AdminService(ledger, resolver).register_asset(db, ASSET.upper(), 6)

        assert result == {"address": ASSET, "decimals": 6, "supply": 0}
        db.commit.assert_awaited_once()


class TestMint:
    async def test_opens_owner_account_then_mints(self, resolver: AddressResolver) -> None:
        ledger, db = AsyncMock(), AsyncMock()
        ledger.ensure_associated_account.return_value = _account(0)
        ledger.mint_to.return_value = _account(500)

        result = await AdminService(ledger, resolver).mint(db, ASSET.upper(), OWNER, 500)

        assert result == {"account": "88" * 32, "balance": 500}
        owner, asset, payer = ledger.ensure_associated_account.await_args.args[1:4]
        assert (owner, asset, payer) == (OWNER, ASSET, OWNER)
        ledger.mint_to.assert_awaited_once_with(db, ASSET, "88" * 32, 500)
        db.commit.assert_awaited_once()

    async def test_failure_rolls_back(self, resolver: AddressResolver) -> None:
        ledger, db = AsyncMock(), AsyncMock()
        ledger.ensure_associated_account.side_effect = AssetNotFoundError(ASSET)

        with pytest.raises(AssetNotFoundError):
            await AdminService(ledger, resolver).mint(db, ASSET, OWNER, 500)

        ledger.mint_to.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()


class TestFundWallet:
    async def test_commits(self, resolver: AddressResolver) -> None:
        ledger, db = AsyncMock(), AsyncMock()
        ledger.fund_wallet.return_value = Wallet(identity=OWNER, balance=1_000)

        result = await AdminService(ledger, resolver).fund_wallet(db, OWNER, 1_000)

        assert result == {"identity": OWNER, "balance": 1_000}
        db.commit.assert_awaited_once()

    async def test_rejection_rolls_back(self, resolver: AddressResolver) -> None:
        ledger, db = AsyncMock(), AsyncMock()
        ledger.fund_wallet.side_effect = InvalidAmountError("fund", 0)

        with pytest.raises(InvalidAmountError):
            await AdminService(ledger, resolver).fund_wallet(db, OWNER, 0)

        db.rollback.assert_awaited_once()
