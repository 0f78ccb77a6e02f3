"""es_offer REST endpoints.

POST /offers                      — make: escrow asset A, persist the offer
POST /offers/{address}/take       — take: swap and close the offer
POST /offers/{address}/cancel     — cancel: maker withdraws the offer
GET  /offers/derive               — offer address + authority proof for (maker, id)
GET  /offers/{address}            — stored offer with its live vault balance
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.es_common.amounts import U64_MAX
from src.es_common.database import get_db_session
from src.es_common.response import ApiResponse, success_response
from src.es_offer.application.schemas import (
    CancelOfferRequest,
    MakeOfferRequest,
    TakeOfferRequest,
)
from src.es_offer.application.service import get_escrow_service

router = APIRouter(prefix="/offers", tags=["offers"])

_service = get_escrow_service()


@router.post("", status_code=201)
async def make_offer(
    body: MakeOfferRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.make_offer(db, body)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{address}/take")
async def take_offer(
    address: str,
    body: TakeOfferRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.take_offer(db, address, body)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{address}/cancel")
async def cancel_offer(
    address: str,
    body: CancelOfferRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.cancel_offer(db, address, body)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/derive")
async def derive_offer_address(
    request: Request,
    maker: str = Query(..., min_length=64, max_length=64),
    offer_id: int = Query(..., ge=0, le=U64_MAX),
) -> ApiResponse:
    data = _service.derive_offer_address(maker, offer_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{address}")
async def get_offer(
    address: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_offer(db, address)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
