"""Address text form: 64 lowercase hex characters for 32 raw bytes."""

import re

from src.es_common.errors import InvalidAddressError

_ADDRESS_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def is_address(value: str) -> bool:
    return isinstance(value, str) and _ADDRESS_RE.match(value) is not None


def decode_address(value: str) -> bytes:
    if not is_address(value):
        raise InvalidAddressError(value)
    return bytes.fromhex(value)


def encode_address(raw: bytes) -> str:
    if len(raw) != 32:
        raise InvalidAddressError(raw.hex())
    return raw.hex()


def normalize_address(value: str) -> str:
    """Validate and lowercase an address string."""
    return encode_address(decode_address(value))
