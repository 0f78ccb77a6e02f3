"""FastAPI dependency: require_admin.

Usage in any admin-only router:
    from src.es_gateway.auth.dependencies import require_admin

    router = APIRouter(dependencies=[Depends(require_admin)])
"""

import secrets

from fastapi import Depends
from fastapi.security import APIKeyHeader

from config.settings import settings
from src.es_common.errors import AdminKeyRequiredError

admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)


async def require_admin(key: str | None = Depends(admin_key_header)) -> None:
    """Reject the call unless X-Admin-Key matches ADMIN_API_KEY.

    An unset ADMIN_API_KEY rejects every call.
    """
    expected = settings.ADMIN_API_KEY
    if not expected or key is None or not secrets.compare_digest(key, expected):
        raise AdminKeyRequiredError()
