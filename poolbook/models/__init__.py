"""Database models package"""

from poolbook.models.base import BaseModel
from poolbook.models.organization import Organization
from poolbook.models.user import User, UserRole
from poolbook.models.pool_resource import PoolResource, ResourceStatus
from poolbook.models.ephemeral_resource import EphemeralResource
from poolbook.models.meeting_room import MeetingRoom
from poolbook.models.booking import Booking, ResourceClass

# Export all models
__all__ = [
    "BaseModel",
    "Organization",
    "User",
    "UserRole",
    "PoolResource",
    "ResourceStatus",
    "EphemeralResource",
    "MeetingRoom",
    "Booking",
    "ResourceClass",
]
