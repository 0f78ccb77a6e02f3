"""Program-derived addresses.

    address = sha256(seed_0 || ... || seed_n || program_id || MARKER)

An address is only valid when it falls off the Ed25519 curve, so no private
key can ever sign for it. The last seed of a derived address is the one-byte
"bump" that pushed the digest off curve; holding the full seed tuple is the
only way to act as the address's authority.
"""

import hashlib
from collections.abc import Sequence

from src.es_common.errors import AddressDerivationExhaustedError, InvalidSeedsError
from src.es_derivation.domain.curve import is_on_curve

PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEED_LEN = 32
MAX_SEEDS = 16
ADDRESS_LEN = 32


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeedsError(f"{len(seeds)} seeds exceeds the limit of {MAX_SEEDS}")
    for i, seed in enumerate(seeds):
        if len(seed) > MAX_SEED_LEN:
            raise InvalidSeedsError(f"seed {i} is {len(seed)} bytes (max {MAX_SEED_LEN})")


def create_program_address(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    """Hash `seeds` (bump included) into an address bound to `program_id`.

    Raises InvalidSeedsError if the seeds are out of bounds or the result
    lands on the curve.
    """
    if len(program_id) != ADDRESS_LEN:
        raise InvalidSeedsError(f"program id must be {ADDRESS_LEN} bytes")
    _check_seeds(seeds)

    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(program_id)
    hasher.update(PDA_MARKER)
    digest = hasher.digest()

    if is_on_curve(digest):
        raise InvalidSeedsError("derived address is on the ed25519 curve")
    return digest


def find_program_address(seeds: Sequence[bytes], program_id: bytes) -> tuple[bytes, int]:
    """Search bumps 255..1 and return the first off-curve (address, bump).

    The bump occupies one seed slot, so `seeds` may hold at most MAX_SEEDS - 1
    entries. Raises AddressDerivationExhaustedError when the bound is reached.
    """
    if len(seeds) >= MAX_SEEDS:
        raise InvalidSeedsError(f"{len(seeds)} seeds leaves no room for the bump")
    _check_seeds(seeds)

    for bump in range(255, 0, -1):
        try:
            address = create_program_address([*seeds, bytes([bump])], program_id)
        except InvalidSeedsError:
            continue
        return address, bump
    raise AddressDerivationExhaustedError()


def verify_program_address(
    address: bytes, seeds: Sequence[bytes], bump: int, program_id: bytes
) -> bool:
    """True if `seeds` + `bump` re-derive exactly `address`."""
    if not 0 <= bump <= 255:
        return False
    try:
        derived = create_program_address([*seeds, bytes([bump])], program_id)
    except InvalidSeedsError:
        return False
    return derived == address
