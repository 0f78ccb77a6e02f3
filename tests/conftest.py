"""Shared test fixtures.

Flow tests run against an in-memory SQLite database (aiosqlite), one fresh
database per test. Parties sign with real Ed25519 keys.
"""

import itertools
from collections.abc import AsyncGenerator, Callable, Iterator
from dataclasses import dataclass

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import src.es_ledger.infrastructure.db_models  # noqa: F401  -- registers tables
import src.es_offer.infrastructure.db_models  # noqa: F401
from src.es_common.database import Base, build_engine, build_session_factory
from src.es_derivation.application.resolver import AddressResolver
from src.es_ledger.domain.authorization import identity_of, sign_consent
from src.es_ledger.domain.models import LedgerReference
from src.es_ledger.infrastructure.persistence import AssetLedger
from src.es_offer.application.schemas import (
    CancelOfferRequest,
    MakeOfferRequest,
    OfferResponse,
    TakeOfferRequest,
)
from src.es_offer.application.service import EscrowService
from src.es_offer.domain.consent import (
    cancel_offer_message,
    make_offer_message,
    take_offer_message,
)
from src.es_offer.domain.models import Offer, StoredOffer
from src.es_offer.infrastructure.persistence import OfferStore

ASSET_A = "a1" * 32
ASSET_B = "b2" * 32
DECIMALS = 6
WALLET_FUNDING = 100_000_000
STARTING_UNITS = 5_000_000

SETUP = LedgerReference("ADMIN", "test-setup")


@dataclass
class Party:
    key: Ed25519PrivateKey

    @property
    def identity(self) -> str:
        return identity_of(self.key)

    def sign(self, message: bytes) -> str:
        return sign_consent(self.key, message).hex()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    eng = build_engine("sqlite+aiosqlite://")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
async def db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Engine components
# ---------------------------------------------------------------------------


@pytest.fixture
def resolver() -> AddressResolver:
    return AddressResolver()


@pytest.fixture
def ledger(resolver: AddressResolver) -> AssetLedger:
    return AssetLedger(resolver)


@pytest.fixture
def store() -> OfferStore:
    return OfferStore()


@pytest.fixture
def service(store: OfferStore, ledger: AssetLedger, resolver: AddressResolver) -> EscrowService:
    return EscrowService(store=store, ledger=ledger, resolver=resolver)


@pytest.fixture
def maker() -> Party:
    return Party(Ed25519PrivateKey.generate())


@pytest.fixture
def taker() -> Party:
    return Party(Ed25519PrivateKey.generate())


@pytest.fixture
async def funded(
    db: AsyncSession, ledger: AssetLedger, maker: Party, taker: Party
) -> None:
    """Both assets registered, both wallets funded, maker holds A, taker holds B."""
    await ledger.register_asset(db, ASSET_A, DECIMALS)
    await ledger.register_asset(db, ASSET_B, DECIMALS)
    for party in (maker, taker):
        await ledger.fund_wallet(db, party.identity, WALLET_FUNDING)
    maker_a = await ledger.ensure_associated_account(
        db, maker.identity, ASSET_A, maker.identity, SETUP
    )
    taker_b = await ledger.ensure_associated_account(
        db, taker.identity, ASSET_B, taker.identity, SETUP
    )
    await ledger.mint_to(db, ASSET_A, maker_a.address, STARTING_UNITS)
    await ledger.mint_to(db, ASSET_B, taker_b.address, STARTING_UNITS)
    await db.commit()


# ---------------------------------------------------------------------------
# Signed request builders
# ---------------------------------------------------------------------------


def offer_terms(offer: OfferResponse | StoredOffer) -> tuple[str, Offer]:
    """Address and stored terms of an offer, as a taker would read them."""
    if isinstance(offer, StoredOffer):
        return offer.address, offer.offer
    return offer.address, Offer(
        id=offer.id,
        maker=offer.maker,
        asset_a=offer.asset_a,
        asset_b=offer.asset_b,
        amount_b_wanted=offer.amount_b_wanted,
        authority_proof=offer.authority_proof,
    )


@pytest.fixture
def nonces() -> Iterator[int]:
    return itertools.count(1)


@pytest.fixture
def make_request(
    resolver: AddressResolver, maker: Party, nonces: Iterator[int]
) -> Callable[..., MakeOfferRequest]:
    def _build(
        offer_id: int = 42,
        amount_a: int = 1_000_000,
        amount_b: int = 1_000_000,
        signer: Party | None = None,
        nonce: int | None = None,
    ) -> MakeOfferRequest:
        nonce = next(nonces) if nonce is None else nonce
        message = make_offer_message(
            resolver.program_address, maker.identity, offer_id,
            ASSET_A, ASSET_B, amount_a, amount_b, nonce,
        )
        return MakeOfferRequest(
            maker=maker.identity,
            offer_id=offer_id,
            asset_a=ASSET_A,
            asset_b=ASSET_B,
            amount_a_offered=amount_a,
            amount_b_wanted=amount_b,
            signature=(signer or maker).sign(message),
            nonce=nonce,
        )

    return _build


@pytest.fixture
def take_request(
    resolver: AddressResolver, maker: Party, taker: Party, nonces: Iterator[int]
) -> Callable[..., TakeOfferRequest]:
    def _build(
        offer: OfferResponse | StoredOffer,
        signer: Party | None = None,
        nonce: int | None = None,
        **overrides: str,
    ) -> TakeOfferRequest:
        nonce = next(nonces) if nonce is None else nonce
        address, terms = offer_terms(offer)
        message = take_offer_message(
            resolver.program_address, address, terms, taker.identity, nonce
        )
        fields: dict[str, object] = {
            "taker": taker.identity,
            "maker": maker.identity,
            "asset_a": ASSET_A,
            "asset_b": ASSET_B,
            "signature": (signer or taker).sign(message),
            "nonce": nonce,
        }
        fields.update(overrides)
        return TakeOfferRequest(**fields)  # type: ignore[arg-type]

    return _build


@pytest.fixture
def cancel_request(
    resolver: AddressResolver, maker: Party, nonces: Iterator[int]
) -> Callable[..., CancelOfferRequest]:
    def _build(
        offer_address: str, caller: Party | None = None, nonce: int | None = None
    ) -> CancelOfferRequest:
        nonce = next(nonces) if nonce is None else nonce
        party = caller or maker
        message = cancel_offer_message(
            resolver.program_address, offer_address, party.identity, nonce
        )
        return CancelOfferRequest(
            maker=party.identity, signature=party.sign(message), nonce=nonce
        )

    return _build
