"""API schemas package"""

from .booking import BookingCreate, BookingResponse, BookingCancelResponse
from .resource import (
    PoolResourceResponse,
    MaintenanceUpdate,
    MeetingRoomResponse,
    EphemeralResourceCreate,
    EphemeralResourceResponse,
)
from .availability import AvailabilityResponse

__all__ = [
    "BookingCreate",
    "BookingResponse",
    "BookingCancelResponse",
    "PoolResourceResponse",
    "MaintenanceUpdate",
    "MeetingRoomResponse",
    "EphemeralResourceCreate",
    "EphemeralResourceResponse",
    "AvailabilityResponse",
]
