"""Booking schemas"""

from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID

from poolbook.models.booking import ResourceClass
from poolbook.schemas.common import UTCDateTime


class BookingCreate(BaseModel):
    """Booking creation schema; exactly one resource ID must be set"""
    organization_id: Optional[UUID] = Field(
        None, description="Organization UUID, taken from the token when authenticated"
    )
    requester_name: str = Field(..., min_length=1, max_length=255, description="Who the booking is for")
    start: datetime = Field(..., description="Start instant (UTC if no offset is given)")
    end: datetime = Field(..., description="End instant, exclusive")
    note: Optional[str] = Field("", description="Free-text note")
    title: Optional[str] = Field(None, max_length=255, description="Meeting title for room bookings")
    pool_resource_id: Optional[UUID] = Field(None, description="Pool resource UUID")
    ephemeral_resource_id: Optional[UUID] = Field(None, description="Extra day resource UUID")
    room_id: Optional[UUID] = Field(None, description="Meeting room UUID")


class BookingResponse(BaseModel):
    """Booking response schema"""
    id: UUID
    organization_id: UUID
    source_organization_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    resource_class: ResourceClass
    pool_resource_id: Optional[UUID] = None
    ephemeral_resource_id: Optional[UUID] = None
    room_id: Optional[UUID] = None
    requester_name: str
    title: Optional[str] = None
    note: str = ""
    start_at: UTCDateTime
    end_at: UTCDateTime
    created_at: UTCDateTime

    class Config:
        from_attributes = True


class BookingCancelResponse(BaseModel):
    """Response for a cancelled booking"""
    success: bool = True
    deleted: BookingResponse
