"""Booking endpoints"""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from poolbook.api.dependencies import ensure_section, get_caller_identity, get_organization_id
from poolbook.api.errors import ProblemDetail
from poolbook.database import get_db
from poolbook.schemas.booking import BookingCancelResponse, BookingCreate, BookingResponse
from poolbook.services.exceptions import ValidationError
from poolbook.services.references import CallerIdentity, RoomRef, resource_ref_from_ids
from poolbook.services.reservation_engine import ReservationEngine

router = APIRouter(prefix="/api/v1", tags=["Bookings"])

PROBLEM_RESPONSES = {
    400: {"model": ProblemDetail},
    403: {"model": ProblemDetail},
    404: {"model": ProblemDetail},
    409: {"model": ProblemDetail},
}


@router.get("/bookings", response_model=List[BookingResponse])
def list_bookings(
    day: Optional[str] = Query(None, alias="date", description="Only bookings starting on this day (YYYY-MM-DD)"),
    organization_id: UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
):
    """List the organization's bookings ordered by start"""
    return ReservationEngine(db).list_bookings(organization_id, day)


@router.get("/meeting-bookings", response_model=List[BookingResponse])
def list_meeting_bookings(
    day: Optional[str] = Query(None, alias="date", description="Only bookings starting on this day (YYYY-MM-DD)"),
    organization_id: UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
):
    """List bookings of all rooms shared with the organization, with the booking organization"""
    ensure_section(db, organization_id, "meetings")
    return ReservationEngine(db).list_meeting_bookings(organization_id, day)


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses=PROBLEM_RESPONSES,
)
def create_booking(
    payload: BookingCreate,
    caller: Optional[CallerIdentity] = Depends(get_caller_identity),
    db: Session = Depends(get_db),
):
    """
    Book a pool resource, an extra day resource or a meeting room

    Returns 409 when the resource is already booked or under maintenance in the period
    """
    organization_id = payload.organization_id or (caller.organization_id if caller else None)
    if organization_id is None:
        raise ValidationError("organization_id is required")

    resource = resource_ref_from_ids(
        pool_resource_id=payload.pool_resource_id,
        ephemeral_resource_id=payload.ephemeral_resource_id,
        room_id=payload.room_id,
    )
    ensure_section(db, organization_id, "meetings" if isinstance(resource, RoomRef) else "cars")

    return ReservationEngine(db).create_booking(
        organization_id=organization_id,
        requester_name=payload.requester_name,
        start=payload.start,
        end=payload.end,
        resource=resource,
        caller=caller,
        note=payload.note,
        title=payload.title,
    )


@router.delete(
    "/bookings/{booking_id}",
    response_model=BookingCancelResponse,
    responses=PROBLEM_RESPONSES,
)
def cancel_booking(
    booking_id: UUID,
    caller: Optional[CallerIdentity] = Depends(get_caller_identity),
    db: Session = Depends(get_db),
):
    """
    Cancel a booking

    The owner or an admin may cancel; bookings without owner need an admin
    """
    removed = ReservationEngine(db).cancel_booking(booking_id, caller)
    return BookingCancelResponse(deleted=BookingResponse.model_validate(removed))
