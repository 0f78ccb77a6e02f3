"""Authorizers — the two ways an account debit or close can be approved.

UserAuthorization: a key holder's consent proof, an Ed25519 signature over
the canonical action message.

DerivedAuthorization: the seed tuple of a program-derived address. It carries
no signature; presenting seeds that re-derive the account's authority is the
whole proof, and only engine code ever holds those seeds.

Both satisfy the Authorizer protocol consumed by the asset ledger.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import ClassVar, Protocol

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from src.es_common.enums import AuthorizerKind, ConsentAction
from src.es_common.errors import InvalidAddressError, InvalidSeedsError
from src.es_derivation.domain.addresses import decode_address, encode_address
from src.es_derivation.domain.pda import create_program_address

CONSENT_DOMAIN = b"escrow-swap"


class Authorizer(Protocol):
    kind: ClassVar[AuthorizerKind]

    def authorizes(self, authority: str) -> bool: ...


def consent_message(action: ConsentAction, **fields: object) -> bytes:
    """Canonical bytes a key holder signs to approve `action`.

    Field order does not matter; keys are sorted and whitespace stripped.
    """
    body = json.dumps(fields, sort_keys=True, separators=(",", ":"))
    return CONSENT_DOMAIN + b":" + action.value.encode() + b":" + body.encode()


def sign_consent(private_key: Ed25519PrivateKey, message: bytes) -> bytes:
    return private_key.sign(message)


def identity_of(private_key: Ed25519PrivateKey) -> str:
    """Hex identity (raw Ed25519 public key) for a private key."""
    raw = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return encode_address(raw)


@dataclass(frozen=True)
class UserAuthorization:
    identity: str
    signature: bytes
    message: bytes

    kind: ClassVar[AuthorizerKind] = AuthorizerKind.USER

    @property
    def digest(self) -> str:
        """Identifies this approval once it has been spent."""
        return hashlib.sha256(self.identity.encode() + b":" + self.message).hexdigest()

    def is_valid(self) -> bool:
        """True if `signature` is the identity's signature over `message`."""
        try:
            public_key = Ed25519PublicKey.from_public_bytes(decode_address(self.identity))
            public_key.verify(self.signature, self.message)
        except (InvalidSignature, InvalidAddressError, ValueError):
            return False
        return True

    def authorizes(self, authority: str) -> bool:
        return authority == self.identity and self.is_valid()


@dataclass(frozen=True)
class DerivedAuthorization:
    seeds: tuple[bytes, ...]         # bump included
    program_id: bytes

    kind: ClassVar[AuthorizerKind] = AuthorizerKind.DERIVED

    @property
    def address(self) -> str | None:
        try:
            return encode_address(create_program_address(self.seeds, self.program_id))
        except InvalidSeedsError:
            return None

    def authorizes(self, authority: str) -> bool:
        address = self.address
        return address is not None and address == authority
