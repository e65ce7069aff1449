"""Resource selection and caller identity value objects"""

from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from poolbook.models.booking import ResourceClass
from poolbook.models.user import UserRole
from poolbook.services.exceptions import ValidationError


@dataclass(frozen=True)
class PoolResourceRef:
    """Selects a durable pool resource"""
    resource_id: UUID
    resource_class = ResourceClass.POOL


@dataclass(frozen=True)
class EphemeralResourceRef:
    """Selects a day-scoped extra resource"""
    resource_id: UUID
    resource_class = ResourceClass.EPHEMERAL


@dataclass(frozen=True)
class RoomRef:
    """Selects a meeting room"""
    resource_id: UUID
    resource_class = ResourceClass.ROOM


ResourceRef = Union[PoolResourceRef, EphemeralResourceRef, RoomRef]


def resource_ref_from_ids(
    pool_resource_id: Optional[UUID] = None,
    ephemeral_resource_id: Optional[UUID] = None,
    room_id: Optional[UUID] = None,
) -> ResourceRef:
    """
    Build a resource reference from the three optional identifiers of a request.

    Raises:
        ValidationError: Unless exactly one identifier is given
    """
    given = [
        ref
        for ref in (
            PoolResourceRef(pool_resource_id) if pool_resource_id else None,
            EphemeralResourceRef(ephemeral_resource_id) if ephemeral_resource_id else None,
            RoomRef(room_id) if room_id else None,
        )
        if ref is not None
    ]
    if len(given) != 1:
        raise ValidationError(
            "Exactly one of pool_resource_id, ephemeral_resource_id or room_id is required"
        )
    return given[0]


@dataclass(frozen=True)
class CallerIdentity:
    """Already verified identity of the user performing a request"""
    user_id: UUID
    organization_id: UUID
    role: str = UserRole.MEMBER.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
