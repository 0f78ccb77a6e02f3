# src/es_admin/api/router.py
"""Admin REST API, guarded by the X-Admin-Key header."""
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.es_admin.application.service import AdminService
from src.es_common.amounts import U64_MAX
from src.es_common.database import get_db_session
from src.es_common.response import ApiResponse, success_response
from src.es_gateway.auth.dependencies import require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
_service = AdminService()


class RegisterAssetRequest(BaseModel):
    address: str
    decimals: int = Field(..., ge=0, le=18)


class MintRequest(BaseModel):
    owner: str
    amount: int = Field(..., gt=0, le=U64_MAX)


class FundWalletRequest(BaseModel):
    amount: int = Field(..., gt=0, le=U64_MAX)


@router.post("/assets", status_code=201)
async def register_asset(
    body: RegisterAssetRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.register_asset(db, body.address, body.decimals)
    return success_response(result)


@router.post("/assets/{asset}/mint")
async def mint(
    asset: str,
    body: MintRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.mint(db, asset, body.owner, body.amount)
    return success_response(result)


@router.post("/wallets/{identity}/fund")
async def fund_wallet(
    identity: str,
    body: FundWalletRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.fund_wallet(db, identity, body.amount)
    return success_response(result)


@router.get("/invariants")
async def verify_invariants(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return success_response(await _service.verify_all_invariants(db))
