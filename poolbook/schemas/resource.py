"""Resource catalog schemas"""

from typing import Optional
from pydantic import BaseModel, Field
from datetime import date, datetime
from uuid import UUID

from poolbook.models.pool_resource import ResourceStatus
from poolbook.schemas.common import UTCDateTime


class PoolResourceResponse(BaseModel):
    """Pool resource response schema"""
    id: UUID
    name: str
    license_plate: Optional[str] = None
    organization_id: Optional[UUID] = None
    status: ResourceStatus
    unavailable_from: Optional[UTCDateTime] = None
    unavailable_until: Optional[UTCDateTime] = None

    class Config:
        from_attributes = True


class MaintenanceUpdate(BaseModel):
    """Pool resource status change"""
    status: str = Field(..., description="available or maintenance")
    unavailable_from: Optional[datetime] = Field(None, description="Blackout start")
    unavailable_until: Optional[datetime] = Field(None, description="Blackout end")


class MeetingRoomResponse(BaseModel):
    """Meeting room response schema"""
    id: UUID
    organization_id: UUID
    name: str
    capacity: Optional[int] = None

    class Config:
        from_attributes = True


class EphemeralResourceCreate(BaseModel):
    """Extra day resource creation schema"""
    label: str = Field(..., max_length=255, description="Name shown when booking")
    day: date = Field(..., description="Day the resource is offered (YYYY-MM-DD)")
    license_plate: Optional[str] = Field(None, max_length=32)


class EphemeralResourceResponse(BaseModel):
    """Extra day resource response schema"""
    id: UUID
    organization_id: UUID
    label: str
    license_plate: Optional[str] = None
    day: date

    class Config:
        from_attributes = True
