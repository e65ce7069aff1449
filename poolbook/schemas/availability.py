"""Availability schemas"""

from pydantic import BaseModel
from uuid import UUID

from poolbook.models.booking import ResourceClass


class AvailabilityResponse(BaseModel):
    """Availability verdict for one resource"""
    resource_id: UUID
    resource_class: ResourceClass
    name: str
    available: bool
    blocked: bool = False
    booked: bool = False

    class Config:
        from_attributes = True
