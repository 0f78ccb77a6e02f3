"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Address derivation
  2xxx: Asset ledger
  3xxx: Offer
  4xxx: Consent / authorization
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Address derivation ---

class AddressDerivationExhaustedError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "No off-curve bump found for the given seeds", 500)


class InvalidSeedsError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1002, f"Invalid seeds: {detail}", 422)


class InvalidAddressError(AppError):
    def __init__(self, value: str) -> None:
        super().__init__(1003, f"Invalid address: {value!r}", 422)


# --- 2xxx: Asset ledger ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            422,
        )


class AssetMismatchError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2002, f"Asset mismatch: {detail}", 422)


class AccountNotEmptyError(AppError):
    def __init__(self, address: str, balance: int) -> None:
        super().__init__(2003, f"Account {address} still holds {balance}", 409)


class UnauthorizedCloseError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(2004, f"Authorizer does not control account {address}", 403)


class UnauthorizedTransferError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(2005, f"Authorizer may not debit account {address}", 403)


class AccountNotFoundError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(2006, f"Account not found: {address}", 404)


class AssetNotFoundError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(2007, f"Asset not found: {address}", 404)


class AccountExistsError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(2008, f"Account already exists: {address}", 409)


class InsufficientDepositFundsError(AppError):
    def __init__(self, identity: str, required: int, available: int) -> None:
        super().__init__(
            2009,
            f"Wallet {identity} cannot cover storage deposit: "
            f"required {required}, available {available}",
            422,
        )


class BalanceOverflowError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(2010, f"Balance overflow on account {address}", 422)


# --- 3xxx: Offer ---

class DuplicateOfferError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(3001, f"Offer already exists at {address}", 409)


class OfferNotFoundError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(3002, f"Offer not found: {address}", 404)


class OfferMismatchError(AppError):
    def __init__(self, field: str) -> None:
        super().__init__(3003, f"Offer mismatch on field: {field}", 422)


class InvalidAuthorityProofError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(3004, f"Authority proof does not re-derive {address}", 403)


class MalformedOfferRecordError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3005, f"Malformed offer record: {detail}", 500)


class InvalidAmountError(AppError):
    def __init__(self, field: str, value: int) -> None:
        super().__init__(3006, f"Invalid amount for {field}: {value}", 422)


# --- 4xxx: Consent ---

class InvalidConsentProofError(AppError):
    def __init__(self, identity: str) -> None:
        super().__init__(4001, f"Invalid consent signature for {identity}", 401)


class ConsentReplayedError(AppError):
    def __init__(self, identity: str) -> None:
        super().__init__(4002, f"Consent proof from {identity} was already used", 409)


class AdminKeyRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(4003, "Missing or invalid admin key", 401)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9001, detail, 500)
