"""Seed namespaces for every derived address in the system.

These tags are fixed at import time and never mutated; changing one moves
every existing offer and vault to a different address.
"""

OFFER_SEED: bytes = b"offer"
VAULT_SEED: bytes = b"vault"
ASSOCIATED_SEED: bytes = b"associated"


def offer_seeds(maker: bytes, offer_id: int) -> tuple[bytes, ...]:
    return (OFFER_SEED, maker, offer_id.to_bytes(8, "little"))


def vault_seeds(offer: bytes, asset: bytes) -> tuple[bytes, ...]:
    return (VAULT_SEED, offer, asset)


def associated_seeds(owner: bytes, asset: bytes) -> tuple[bytes, ...]:
    return (ASSOCIATED_SEED, owner, asset)
