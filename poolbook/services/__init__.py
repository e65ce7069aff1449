"""Services package"""

from .exceptions import (
    ReservationError,
    ValidationError,
    NotFoundError,
    ConflictError,
    ForbiddenError,
    StoreError,
)
from .references import (
    CallerIdentity,
    PoolResourceRef,
    EphemeralResourceRef,
    RoomRef,
    resource_ref_from_ids,
)
from .organization_service import OrganizationService
from .resource_catalog import ResourceCatalog
from .booking_store import BookingStore
from .availability_service import AvailabilityService, AvailabilityVerdict
from .reservation_engine import ReservationEngine

__all__ = [
    "ReservationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ForbiddenError",
    "StoreError",
    "CallerIdentity",
    "PoolResourceRef",
    "EphemeralResourceRef",
    "RoomRef",
    "resource_ref_from_ids",
    "OrganizationService",
    "ResourceCatalog",
    "BookingStore",
    "AvailabilityService",
    "AvailabilityVerdict",
    "ReservationEngine",
]
