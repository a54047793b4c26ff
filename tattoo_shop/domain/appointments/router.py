"""Appointment router - FastAPI endpoints for bookings"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ..integrations.square.sync_adapter import SquareSyncAdapter
from .schemas import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentUpdate,
    BookingResponse,
    ExternalSyncResponse,
)
from .service import BookingOrchestrator, BookingResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_sync_adapter() -> SquareSyncAdapter:
    """Dependency injection for the Square mirror"""
    return SquareSyncAdapter()


def get_booking_orchestrator(
    db: Session = Depends(get_db),
    sync_adapter: SquareSyncAdapter = Depends(get_sync_adapter),
) -> BookingOrchestrator:
    """Dependency injection for BookingOrchestrator"""
    return BookingOrchestrator(db, sync_adapter=sync_adapter)


def booking_response(result: BookingResult) -> BookingResponse:
    sync = None
    if result.sync is not None:
        sync = ExternalSyncResponse(
            operation=result.sync.operation,
            status=result.sync.status,
            error=result.sync.error,
        )
    return BookingResponse(
        appointment=AppointmentResponse.from_model(result.appointment),
        externalSyncSucceeded=result.external_sync_succeeded,
        externalSync=sync,
    )


@router.post("", response_model=BookingResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    """Book an appointment; the Square outcome is advisory"""
    result = await service.create(data, actor_id)
    return booking_response(result)


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    status: Optional[str] = Query(None),
    customerId: Optional[str] = Query(None),
    artistId: Optional[str] = Query(None),
    start_from: Optional[datetime] = Query(None, alias="from"),
    start_to: Optional[datetime] = Query(None, alias="to"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    result = service.list(
        status=status,
        customer_id=customerId,
        artist_id=artistId,
        start_from=start_from,
        start_to=start_to,
        page=page,
        limit=limit,
    )
    return AppointmentListResponse(
        data=[AppointmentResponse.from_model(a) for a in result["data"]],
        pagination=result["pagination"],
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    return AppointmentResponse.from_model(service.get(appointment_id))


@router.put("/{appointment_id}", response_model=BookingResponse)
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    """Reschedule, reassign, annotate or move an appointment along its status graph"""
    result = await service.update(appointment_id, data, actor_id)
    return booking_response(result)


@router.post("/{appointment_id}/cancel", response_model=BookingResponse)
async def cancel_appointment(
    appointment_id: str,
    data: Optional[AppointmentCancel] = None,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    result = await service.cancel(appointment_id, data.reason if data else None, actor_id)
    return booking_response(result)


@router.post("/{appointment_id}/sync", response_model=BookingResponse)
async def retry_appointment_sync(
    appointment_id: str,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    """Re-attempt the Square mirror for a booking that never reached Square"""
    result = await service.retry_external_sync(appointment_id, actor_id)
    return booking_response(result)
