"""Availability aggregation across pool resources, extra day resources and rooms"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session

from poolbook.models.booking import ResourceClass
from poolbook.models.pool_resource import PoolResource, ResourceStatus
from poolbook.services.booking_store import BookingStore
from poolbook.services.exceptions import ValidationError
from poolbook.services.intervals import is_valid_range, overlaps, to_utc
from poolbook.services.organization_service import OrganizationService
from poolbook.services.resource_catalog import ResourceCatalog


@dataclass
class AvailabilityVerdict:
    """Availability of one resource for a requested window"""
    resource_id: UUID
    resource_class: ResourceClass
    name: str
    available: bool
    blocked: bool = False
    booked: bool = False


def is_blocked(
    resource: PoolResource,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> bool:
    """
    Whether maintenance makes a pool resource unbookable for [start, end).

    Maintenance without a window blocks every range. A window bound that is
    missing leaves that side of the blackout open. Without a requested range
    only an unbounded blackout counts.
    """
    if resource.status != ResourceStatus.MAINTENANCE.value:
        return False

    if resource.unavailable_from is None and resource.unavailable_until is None:
        return True

    if start is None or end is None:
        return False

    blackout_start = resource.unavailable_from or datetime.min
    blackout_end = resource.unavailable_until or datetime.max
    return overlaps(start, end, blackout_start, blackout_end)


class AvailabilityService:
    """
    Read-only projection of catalog state and existing bookings.

    Verdicts are informational: the reservation engine repeats the overlap
    check under a lock before committing a booking.
    """

    def __init__(self, db: Session):
        """Initialize with database session"""
        self.db = db
        self.catalog = ResourceCatalog(db)
        self.store = BookingStore(db)

    def availability(
        self,
        organization_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[AvailabilityVerdict]:
        """
        Compute a verdict for every resource visible to the organization.

        Visible resources are shared and owned pool resources, the
        organization's extra resources for the day the window starts on, and
        rooms of the organization and its meeting namespace. Without a window
        nothing counts as booked.

        Args:
            organization_id: Organization UUID
            start: Window start
            end: Window end (exclusive)

        Returns:
            List of AvailabilityVerdict, pool resources first, then extra resources, then rooms

        Raises:
            ValidationError: If only one bound is given or the window is empty
            NotFoundError: If the organization does not exist
        """
        if (start is None) != (end is None):
            raise ValidationError("Both start and end are required for an availability window")
        if start is not None and not is_valid_range(start, end):
            raise ValidationError("End must be after start")

        OrganizationService(self.db).get(organization_id)

        pool_resources = self.catalog.list_pool_resources(organization_id)
        rooms = self.catalog.list_visible_rooms(organization_id)
        ephemeral_resources = []
        if start is not None:
            start, end = to_utc(start), to_utc(end)
            ephemeral_resources = self.catalog.list_ephemeral_resources(
                organization_id, start.date()
            )

        booked = set()
        if start is not None:
            booked = self.store.booked_resources(
                organization_id,
                start,
                end,
                pool_resource_ids=[r.id for r in pool_resources],
                ephemeral_resource_ids=[r.id for r in ephemeral_resources],
                room_ids=[r.id for r in rooms],
            )

        verdicts = []
        for resource in pool_resources:
            blocked = is_blocked(resource, start, end)
            is_booked = (ResourceClass.POOL, resource.id) in booked
            verdicts.append(
                AvailabilityVerdict(
                    resource_id=resource.id,
                    resource_class=ResourceClass.POOL,
                    name=resource.name,
                    available=not blocked and not is_booked,
                    blocked=blocked,
                    booked=is_booked,
                )
            )

        for resource in ephemeral_resources:
            is_booked = (ResourceClass.EPHEMERAL, resource.id) in booked
            verdicts.append(
                AvailabilityVerdict(
                    resource_id=resource.id,
                    resource_class=ResourceClass.EPHEMERAL,
                    name=resource.label,
                    available=not is_booked,
                    booked=is_booked,
                )
            )

        for room in rooms:
            is_booked = (ResourceClass.ROOM, room.id) in booked
            verdicts.append(
                AvailabilityVerdict(
                    resource_id=room.id,
                    resource_class=ResourceClass.ROOM,
                    name=room.name,
                    available=not is_booked,
                    booked=is_booked,
                )
            )

        return verdicts
