"""es_ledger REST API — read-only account and wallet lookups."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.database import get_db_session
from src.es_common.response import ApiResponse, success_response
from src.es_ledger.application.service import LedgerQueryService

router = APIRouter(prefix="/ledger", tags=["ledger"])

_service = LedgerQueryService()


@router.get("/accounts/{address}")
async def get_account(
    address: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_account(db, address)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/wallets/{identity}")
async def get_wallet(
    identity: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_wallet(db, identity)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
