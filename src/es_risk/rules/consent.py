from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.errors import ConsentReplayedError, InvalidConsentProofError
from src.es_ledger.domain.authorization import UserAuthorization
from src.es_ledger.domain.repository import AssetLedgerProtocol


def check_consent(authorization: UserAuthorization) -> None:
    """Reject a bad signature before anything is touched.

    The ledger verifies the same proof again on the debit itself.
    """
    if not authorization.is_valid():
        raise InvalidConsentProofError(authorization.identity)


async def check_consent_unspent(
    ledger: AssetLedgerProtocol, authorization: UserAuthorization, db: AsyncSession
) -> None:
    """A signed approval counts once; resubmitting it is refused."""
    if await ledger.is_consent_spent(db, authorization):
        raise ConsentReplayedError(authorization.identity)
