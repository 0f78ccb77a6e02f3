"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class AuthorizerKind(str, Enum):
    USER = "USER"
    DERIVED = "DERIVED"


class ConsentAction(str, Enum):
    MAKE_OFFER = "make_offer"
    TAKE_OFFER = "take_offer"
    CANCEL_OFFER = "cancel_offer"


class LedgerEntryType(str, Enum):
    # Asset movements (per token account)
    MINT = "MINT"
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"
    # Storage deposits (per wallet)
    WALLET_FUND = "WALLET_FUND"
    DEPOSIT_CHARGE = "DEPOSIT_CHARGE"
    DEPOSIT_REFUND = "DEPOSIT_REFUND"
    # Account lifecycle
    ACCOUNT_OPEN = "ACCOUNT_OPEN"
    ACCOUNT_CLOSE = "ACCOUNT_CLOSE"


class ReferenceType(str, Enum):
    OFFER = "OFFER"
    ADMIN = "ADMIN"
