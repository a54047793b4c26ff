"""Tattoo request router - FastAPI endpoints for intake and review"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ..appointments.router import booking_response, get_sync_adapter
from ..appointments.service import BookingOrchestrator
from ..integrations.square.sync_adapter import SquareSyncAdapter
from .lifecycle import TattooRequestStatus
from .schemas import (
    ConversionResponse,
    ConvertToAppointment,
    TattooRequestCreate,
    TattooRequestListResponse,
    TattooRequestResponse,
    TattooRequestStatusUpdate,
)
from .service import TattooRequestService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tattoo-requests", tags=["Tattoo Requests"])


def get_tattoo_request_service(
    db: Session = Depends(get_db),
    sync_adapter: SquareSyncAdapter = Depends(get_sync_adapter),
) -> TattooRequestService:
    """Dependency injection for TattooRequestService"""
    return TattooRequestService(db, BookingOrchestrator(db, sync_adapter=sync_adapter))


@router.post("", response_model=TattooRequestResponse, status_code=201)
async def create_tattoo_request(
    data: TattooRequestCreate,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    service: TattooRequestService = Depends(get_tattoo_request_service),
):
    """Public intake form; anonymous submissions receive a tracking token"""
    return TattooRequestResponse.from_model(service.create(data, actor_id))


@router.get("", response_model=TattooRequestListResponse)
async def list_tattoo_requests(
    status: Optional[TattooRequestStatus] = Query(None),
    customerId: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: TattooRequestService = Depends(get_tattoo_request_service),
):
    result = service.list(
        status=status.value if status else None,
        customer_id=customerId,
        page=page,
        limit=limit,
    )
    return TattooRequestListResponse(
        data=[TattooRequestResponse.from_model(r) for r in result["data"]],
        pagination=result["pagination"],
    )


@router.get("/track/{tracking_token}", response_model=TattooRequestResponse)
async def track_tattoo_request(
    tracking_token: str,
    service: TattooRequestService = Depends(get_tattoo_request_service),
):
    """Anonymous lookup by the token handed out at intake"""
    return TattooRequestResponse.from_model(service.get_by_tracking_token(tracking_token))


@router.get("/{request_id}", response_model=TattooRequestResponse)
async def get_tattoo_request(
    request_id: str,
    service: TattooRequestService = Depends(get_tattoo_request_service),
):
    return TattooRequestResponse.from_model(service.get(request_id))


@router.put("/{request_id}/status", response_model=TattooRequestResponse)
async def update_tattoo_request_status(
    request_id: str,
    data: TattooRequestStatusUpdate,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    service: TattooRequestService = Depends(get_tattoo_request_service),
):
    return TattooRequestResponse.from_model(
        service.update_status(request_id, data.status.value, actor_id)
    )


@router.post("/{request_id}/convert", response_model=ConversionResponse, status_code=201)
async def convert_tattoo_request(
    request_id: str,
    data: ConvertToAppointment,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    service: TattooRequestService = Depends(get_tattoo_request_service),
):
    """Book a confirmed appointment for an approved request"""
    result = await service.convert_to_appointment(request_id, data, actor_id)
    return ConversionResponse(
        booking=booking_response(result.booking),
        tattooRequest=TattooRequestResponse.from_model(result.tattoo_request),
    )
