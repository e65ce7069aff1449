"""Reservation engine: creates and cancels bookings without double-booking"""

import logging
from datetime import date, datetime
from typing import List, Optional, Union
from uuid import UUID
from sqlalchemy.orm import Session

from poolbook.models.booking import Booking
from poolbook.services.availability_service import (
    AvailabilityService,
    AvailabilityVerdict,
    is_blocked,
)
from poolbook.services.booking_store import BookingStore
from poolbook.services.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from poolbook.services.intervals import is_valid_range, to_utc
from poolbook.services.locking import ResourceLocks, booking_scope, resource_locks
from poolbook.services.organization_service import OrganizationService
from poolbook.services.references import (
    CallerIdentity,
    EphemeralResourceRef,
    PoolResourceRef,
    ResourceRef,
    RoomRef,
)
from poolbook.services.resource_catalog import ResourceCatalog

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "Resource already booked in this period"


class ReservationEngine:
    """
    Entry point for booking commands and queries.

    Every create runs exactly one overlap check followed by one insert while
    holding the lock of the contended resource, so two overlapping requests
    for the same resource cannot both succeed.
    """

    def __init__(self, db: Session, locks: Optional[ResourceLocks] = None):
        """Initialize with database session"""
        self.db = db
        self.locks = locks or resource_locks
        self.store = BookingStore(db)
        self.catalog = ResourceCatalog(db)
        self.organizations = OrganizationService(db)
        self.availability_service = AvailabilityService(db)

    def availability(
        self,
        organization_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[AvailabilityVerdict]:
        return self.availability_service.availability(organization_id, start, end)

    def list_bookings(
        self, organization_id: UUID, day: Optional[Union[str, date]] = None
    ) -> List[Booking]:
        self.organizations.get(organization_id)
        return self.store.list_by_org(organization_id, day)

    def list_meeting_bookings(
        self, organization_id: UUID, day: Optional[Union[str, date]] = None
    ) -> List[Booking]:
        """Bookings of every room visible to the organization, for the shared calendar"""
        rooms = self.catalog.list_visible_rooms(organization_id)
        return self.store.list_for_rooms([room.id for room in rooms], day)

    def create_booking(
        self,
        organization_id: UUID,
        requester_name: str,
        start: datetime,
        end: datetime,
        resource: ResourceRef,
        caller: Optional[CallerIdentity] = None,
        note: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Booking:
        """
        Create a booking for exactly one resource.

        Args:
            organization_id: Organization making the booking
            requester_name: Display name of the person the booking is for
            start: Start instant
            end: End instant (exclusive)
            resource: PoolResourceRef, EphemeralResourceRef or RoomRef
            caller: Verified identity of the signed-in user, if any
            note: Free-text note
            title: Meeting title for room bookings

        Returns:
            The stored Booking

        Raises:
            ValidationError: Missing fields, empty range, bad resource selection,
                or an extra resource booked outside its day or after that day passed
            NotFoundError: Unknown organization or resource, or a resource the
                organization cannot book
            ForbiddenError: Caller belongs to a different organization
            ConflictError: Overlapping booking or maintenance blackout
            StoreError: On database failure, including integrity violations
                other than an overlap
        """
        if start is None or end is None:
            raise ValidationError("Start and end are required")
        start, end = to_utc(start), to_utc(end)
        if not is_valid_range(start, end):
            raise ValidationError("End must be after start")

        if not isinstance(resource, (PoolResourceRef, EphemeralResourceRef, RoomRef)):
            raise ValidationError("Exactly one resource must be selected")

        if not requester_name or not requester_name.strip():
            raise ValidationError("Requester name is required")

        if caller is not None and caller.organization_id != organization_id:
            raise ForbiddenError("Cannot book on behalf of another organization")

        self.organizations.get(organization_id)

        booking = Booking(
            organization_id=organization_id,
            user_id=caller.user_id if caller else None,
            requester_name=requester_name.strip(),
            title=title,
            note=note or "",
            start_at=start,
            end_at=end,
        )

        if isinstance(resource, PoolResourceRef):
            self._check_pool_resource(organization_id, resource, start, end)
            booking.pool_resource_id = resource.resource_id
        elif isinstance(resource, EphemeralResourceRef):
            self._check_ephemeral_resource(organization_id, resource, start)
            booking.ephemeral_resource_id = resource.resource_id
        else:
            room = self._check_room(organization_id, resource)
            booking.room_id = room.id
            # The room owner holds the booking, the requesting organization is kept for attribution
            booking.organization_id = room.organization_id
            booking.source_organization_id = organization_id

        with self.locks.hold(self.db, booking_scope(resource, organization_id)):
            existing = self.store.find_overlapping(organization_id, resource, start, end)
            if existing:
                logger.warning(
                    f"Rejected booking of {resource.resource_class.value} {resource.resource_id} "
                    f"for {start} - {end}: overlaps booking {existing[0].id}"
                )
                raise ConflictError(CONFLICT_MESSAGE)

            booking = self.store.insert(booking)

        logger.info(
            f"Created booking {booking.id} of {resource.resource_class.value} "
            f"{resource.resource_id} for organization {organization_id} ({start} - {end})"
        )
        return booking

    def cancel_booking(
        self, booking_id: UUID, caller: Optional[CallerIdentity] = None
    ) -> Booking:
        """
        Cancel (delete) a booking.

        Without a caller identity the deletion is allowed for legacy clients.
        Otherwise the owner or an admin of the organization may cancel, and
        bookings without an owner can only be cancelled by an admin.

        Returns:
            The removed Booking

        Raises:
            NotFoundError: If the booking does not exist
            ForbiddenError: If the caller may not cancel the booking
        """
        booking = self.store.get(booking_id)
        if not booking:
            raise NotFoundError(f"Booking {booking_id} not found")

        if caller is None:
            logger.warning(f"Cancelling booking {booking_id} without caller identity")
        else:
            self._authorize_cancel(booking, caller)

        removed = self.store.delete(booking_id)
        if removed is None:
            raise NotFoundError(f"Booking {booking_id} not found")

        logger.info(f"Cancelled booking {booking_id}")
        return removed

    def _authorize_cancel(self, booking: Booking, caller: CallerIdentity) -> None:
        if caller.organization_id not in (booking.organization_id, booking.source_organization_id):
            logger.warning(f"User {caller.user_id} denied cancel of foreign booking {booking.id}")
            raise ForbiddenError("Booking belongs to another organization")

        is_owner = booking.user_id is not None and booking.user_id == caller.user_id
        is_legacy = booking.user_id is None

        if not is_owner and not caller.is_admin:
            logger.warning(f"User {caller.user_id} denied cancel of booking {booking.id}")
            if is_legacy:
                raise ForbiddenError("Only an admin can cancel a booking without owner")
            raise ForbiddenError("Only the owner or an admin can cancel this booking")

    def _check_pool_resource(
        self,
        organization_id: UUID,
        resource: PoolResourceRef,
        start: datetime,
        end: datetime,
    ) -> None:
        pool_resource = self.catalog.get_pool_resource(resource.resource_id)
        if not pool_resource or pool_resource.organization_id not in (None, organization_id):
            raise NotFoundError(f"Pool resource {resource.resource_id} not found")

        if is_blocked(pool_resource, start, end):
            logger.warning(
                f"Rejected booking of pool resource {pool_resource.id}: under maintenance"
            )
            raise ConflictError("Resource is under maintenance in this period")

    def _check_ephemeral_resource(
        self,
        organization_id: UUID,
        resource: EphemeralResourceRef,
        start: datetime,
    ) -> None:
        extra = self.catalog.get_ephemeral_resource(resource.resource_id)
        if not extra or extra.organization_id != organization_id:
            raise NotFoundError(f"Extra resource {resource.resource_id} not found")

        if start.date() != extra.day:
            raise ValidationError(
                f"Extra resource {extra.id} is only available on {extra.day.isoformat()}"
            )

        if not self.catalog.is_offerable(extra):
            raise ValidationError(
                f"Extra resource {extra.id} is no longer offered, {extra.day.isoformat()} has passed"
            )

    def _check_room(self, organization_id: UUID, resource: RoomRef):
        room = self.catalog.get_room(resource.resource_id)
        if not room or room.organization_id not in self.organizations.namespace_member_ids(
            organization_id
        ):
            raise NotFoundError(f"Meeting room {resource.resource_id} not found")
        return room
