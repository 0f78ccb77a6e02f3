# src/es_ledger/application/schemas.py
from pydantic import BaseModel


class TokenAccountResponse(BaseModel):
    address: str
    asset: str
    authority: str
    authority_kind: str
    balance: int
    balance_display: str
    storage_deposit: int
    created_at: str | None = None


class WalletResponse(BaseModel):
    identity: str
    balance: int
    updated_at: str | None = None
