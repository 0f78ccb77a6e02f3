"""AddressResolver — computes every address the escrow engine acts on.

Bound once to the escrow program id and the associated-account program id
from settings. Inputs and outputs are hex address strings.
"""

from dataclasses import dataclass

from config.settings import settings
from src.es_common.amounts import is_u64
from src.es_common.errors import InvalidSeedsError
from src.es_derivation.domain.addresses import decode_address, encode_address
from src.es_derivation.domain.pda import find_program_address, verify_program_address
from src.es_derivation.domain.seeds import associated_seeds, offer_seeds, vault_seeds


@dataclass(frozen=True)
class DerivedAddress:
    address: str
    bump: int
    seeds: tuple[bytes, ...]

    @property
    def signer_seeds(self) -> tuple[bytes, ...]:
        """Full seed tuple, bump included — what an authority must present."""
        return (*self.seeds, bytes([self.bump]))


class AddressResolver:
    def __init__(
        self,
        program_id: str | None = None,
        associated_program_id: str | None = None,
    ) -> None:
        self.program_id: bytes = decode_address(program_id or settings.PROGRAM_ID)
        self.associated_program_id: bytes = decode_address(
            associated_program_id or settings.ASSOCIATED_ACCOUNT_PROGRAM_ID
        )

    @property
    def program_address(self) -> str:
        return encode_address(self.program_id)

    def offer_address(self, maker: str, offer_id: int) -> DerivedAddress:
        seeds = self.offer_seeds(maker, offer_id)
        address, bump = find_program_address(seeds, self.program_id)
        return DerivedAddress(address=encode_address(address), bump=bump, seeds=seeds)

    def vault_address(self, offer: str, asset: str) -> DerivedAddress:
        seeds = vault_seeds(decode_address(offer), decode_address(asset))
        address, bump = find_program_address(seeds, self.program_id)
        return DerivedAddress(address=encode_address(address), bump=bump, seeds=seeds)

    def associated_account(self, owner: str, asset: str) -> str:
        seeds = associated_seeds(decode_address(owner), decode_address(asset))
        address, _ = find_program_address(seeds, self.associated_program_id)
        return encode_address(address)

    def offer_seeds(self, maker: str, offer_id: int) -> tuple[bytes, ...]:
        if not is_u64(offer_id):
            raise InvalidSeedsError(f"offer id {offer_id} is not a u64")
        return offer_seeds(decode_address(maker), offer_id)

    def verify_offer_authority(
        self, address: str, maker: str, offer_id: int, bump: int
    ) -> bool:
        """True if (maker, offer_id, bump) re-derive `address` under this program."""
        return verify_program_address(
            decode_address(address),
            self.offer_seeds(maker, offer_id),
            bump,
            self.program_id,
        )
