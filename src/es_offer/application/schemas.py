# src/es_offer/application/schemas.py
import re

from pydantic import BaseModel, Field, field_validator

from src.es_common.amounts import U64_MAX
from src.es_derivation.domain.addresses import is_address

_SIGNATURE_RE = re.compile(r"^[0-9a-fA-F]{128}$")


def _address(v: str) -> str:
    if not is_address(v):
        raise ValueError("must be 64 hex characters")
    return v.lower()


def _signature(v: str) -> str:
    if not _SIGNATURE_RE.match(v):
        raise ValueError("signature must be 128 hex characters")
    return v.lower()


class _SignedRequest(BaseModel):
    signature: str = Field(..., description="Ed25519 consent signature, hex")
    nonce: int = Field(..., ge=0, le=U64_MAX, description="Signed along with the action")

    @field_validator("signature")
    @classmethod
    def valid_signature(cls, v: str) -> str:
        return _signature(v)

    @property
    def signature_bytes(self) -> bytes:
        return bytes.fromhex(self.signature)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class MakeOfferRequest(_SignedRequest):
    maker: str
    offer_id: int = Field(..., ge=0, le=U64_MAX)
    asset_a: str
    asset_b: str
    amount_a_offered: int
    amount_b_wanted: int

    @field_validator("maker", "asset_a", "asset_b")
    @classmethod
    def valid_address(cls, v: str) -> str:
        return _address(v)


class TakeOfferRequest(_SignedRequest):
    taker: str
    maker: str
    asset_a: str
    asset_b: str
    # Each defaults to the party's associated account for the asset
    taker_account_b: str | None = None
    taker_account_a: str | None = None
    maker_account_b: str | None = None

    @field_validator("taker", "maker", "asset_a", "asset_b")
    @classmethod
    def valid_address(cls, v: str) -> str:
        return _address(v)

    @field_validator("taker_account_b", "taker_account_a", "maker_account_b")
    @classmethod
    def valid_optional_address(cls, v: str | None) -> str | None:
        return None if v is None else _address(v)


class CancelOfferRequest(_SignedRequest):
    maker: str

    @field_validator("maker")
    @classmethod
    def valid_address(cls, v: str) -> str:
        return _address(v)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OfferResponse(BaseModel):
    address: str
    id: int
    maker: str
    asset_a: str
    asset_b: str
    amount_b_wanted: int
    authority_proof: int
    vault: str
    vault_balance: int
    storage_deposit: int
    created_at: str | None = None


class MakeOfferResponse(BaseModel):
    offer: OfferResponse
    vault_storage_deposit: int


class TakeOfferResponse(BaseModel):
    offer_address: str
    maker: str
    taker: str
    amount_a_received: int
    amount_b_paid: int
    vault_deposit_refunded: int      # to the taker
    offer_deposit_refunded: int      # to the maker


class CancelOfferResponse(BaseModel):
    offer_address: str
    maker: str
    amount_a_returned: int
    vault_deposit_refunded: int
    offer_deposit_refunded: int


class DerivedOfferAddressResponse(BaseModel):
    address: str
    authority_proof: int
    maker: str
    offer_id: int
