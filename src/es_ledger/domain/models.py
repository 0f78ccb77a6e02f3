"""Domain models for es_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Asset:
    address: str
    decimals: int        # precision: 1 unit = 10**-decimals
    supply: int          # base units in circulation
    created_at: datetime | None = None


@dataclass
class TokenAccount:
    address: str
    asset: str
    authority: str
    authority_kind: str      # AuthorizerKind value
    balance: int             # base units of `asset`
    storage_deposit: int     # native units held until close
    created_at: datetime | None = None

    @property
    def is_custody(self) -> bool:
        """Custody accounts answer to a derived address, never to a key holder."""
        return self.authority_kind == "DERIVED"


@dataclass
class Wallet:
    identity: str
    balance: int             # native units available for storage deposits
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class LedgerReference:
    """What a ledger movement was made for — journaled on every entry."""

    type: str                        # ReferenceType value
    id: str
