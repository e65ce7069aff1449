"""Booking store: the reservation ledger"""

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Set, Tuple, Union
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from poolbook.models.booking import Booking, ResourceClass
from poolbook.services.exceptions import ConflictError, StoreError
from poolbook.services.intervals import day_bounds, to_utc
from poolbook.services.references import ResourceRef

logger = logging.getLogger(__name__)

# Exclusion constraints added by the initial migration on PostgreSQL
OVERLAP_CONSTRAINT_PREFIX = "bookings_no_overlap_"

# PostgreSQL SQLSTATE exclusion_violation
EXCLUSION_VIOLATION = "23P01"


def is_overlap_violation(error: IntegrityError) -> bool:
    """
    Whether an IntegrityError was raised by one of the booking overlap
    exclusion constraints, as opposed to a foreign key, check or not-null
    violation.
    """
    orig = getattr(error, "orig", None)
    if getattr(orig, "pgcode", None) == EXCLUSION_VIOLATION:
        return True

    constraint_name = ""
    diag = getattr(orig, "diag", None)
    if diag is not None:
        constraint_name = getattr(diag, "constraint_name", "") or ""
    if not constraint_name and orig is not None:
        constraint_name = str(orig)

    return OVERLAP_CONSTRAINT_PREFIX in constraint_name


class BookingStore:
    """
    Persistence of bookings.

    The store never decides whether a booking is allowed; the reservation
    engine calls find_overlapping under a resource lock right before insert.
    Every database failure leaves the store as StoreError, except an overlap
    rejected by the storage constraints, which is a ConflictError.
    """

    def __init__(self, db: Session):
        """Initialize with database session"""
        self.db = db

    def list_by_org(
        self, organization_id: UUID, day: Optional[Union[str, date]] = None
    ) -> List[Booking]:
        """
        List bookings of an organization ordered by start.

        Includes room bookings the organization made in a shared namespace.

        Args:
            organization_id: Organization UUID
            day: Optional UTC day; keeps bookings starting within that day

        Returns:
            List of Booking objects
        """
        bounds = day_bounds(day) if day is not None else None
        try:
            query = self.db.query(Booking).filter(
                or_(
                    Booking.organization_id == organization_id,
                    Booking.source_organization_id == organization_id,
                )
            )
            return self._by_day(query, bounds).order_by(Booking.start_at, Booking.id).all()
        except SQLAlchemyError as e:
            self._read_failed(f"list bookings of organization {organization_id}", e)

    def list_for_rooms(
        self, room_ids: Iterable[UUID], day: Optional[Union[str, date]] = None
    ) -> List[Booking]:
        """List bookings of the given meeting rooms ordered by start"""
        room_ids = list(room_ids)
        if not room_ids:
            return []

        bounds = day_bounds(day) if day is not None else None
        try:
            query = self.db.query(Booking).filter(Booking.room_id.in_(room_ids))
            return self._by_day(query, bounds).order_by(Booking.start_at, Booking.id).all()
        except SQLAlchemyError as e:
            self._read_failed("list room bookings", e)

    def find_overlapping(
        self,
        organization_id: UUID,
        resource: ResourceRef,
        start: datetime,
        end: datetime,
    ) -> List[Booking]:
        """
        Existing bookings of the resource whose interval overlaps [start, end).

        Room bookings are matched on the room alone; pool and extra resource
        bookings on resource and organization.
        """
        start, end = to_utc(start), to_utc(end)
        try:
            query = self.db.query(Booking).filter(
                Booking.start_at < end,
                Booking.end_at > start,
            )

            if resource.resource_class == ResourceClass.ROOM:
                query = query.filter(Booking.room_id == resource.resource_id)
            elif resource.resource_class == ResourceClass.EPHEMERAL:
                query = query.filter(
                    Booking.ephemeral_resource_id == resource.resource_id,
                    Booking.organization_id == organization_id,
                )
            else:
                query = query.filter(
                    Booking.pool_resource_id == resource.resource_id,
                    Booking.organization_id == organization_id,
                )

            return query.order_by(Booking.start_at).all()
        except SQLAlchemyError as e:
            self._read_failed(
                f"check overlaps of {resource.resource_class.value} {resource.resource_id}", e
            )

    def booked_resources(
        self,
        organization_id: UUID,
        start: datetime,
        end: datetime,
        pool_resource_ids: Iterable[UUID] = (),
        ephemeral_resource_ids: Iterable[UUID] = (),
        room_ids: Iterable[UUID] = (),
    ) -> Set[Tuple[ResourceClass, UUID]]:
        """
        Resources with at least one booking overlapping [start, end).

        Uses the same scoping as find_overlapping, batched per resource class.
        """
        start, end = to_utc(start), to_utc(end)
        pool_resource_ids = list(pool_resource_ids)
        ephemeral_resource_ids = list(ephemeral_resource_ids)
        room_ids = list(room_ids)

        conditions = []
        if pool_resource_ids:
            conditions.append(
                (Booking.organization_id == organization_id)
                & Booking.pool_resource_id.in_(pool_resource_ids)
            )
        if ephemeral_resource_ids:
            conditions.append(
                (Booking.organization_id == organization_id)
                & Booking.ephemeral_resource_id.in_(ephemeral_resource_ids)
            )
        if room_ids:
            conditions.append(Booking.room_id.in_(room_ids))
        if not conditions:
            return set()

        try:
            rows = (
                self.db.query(Booking)
                .filter(Booking.start_at < end, Booking.end_at > start)
                .filter(or_(*conditions))
                .all()
            )
        except SQLAlchemyError as e:
            self._read_failed("collect booked resources", e)
        return {(b.resource_class, b.resource_id) for b in rows}

    def insert(self, booking: Booking) -> Booking:
        """
        Persist a new booking and return the stored row.

        Raises:
            ConflictError: If a storage-level overlap constraint rejects the row
            StoreError: On any other database failure, other integrity
                violations included
        """
        try:
            self.db.add(booking)
            self.db.commit()
            self.db.refresh(booking)
        except IntegrityError as e:
            self.db.rollback()
            if is_overlap_violation(e):
                logger.warning(f"Overlap constraint rejected booking: {e.orig}")
                raise ConflictError("Resource already booked in this period") from e
            logger.error(f"Integrity violation storing booking: {e.orig}")
            raise StoreError(f"Failed to store booking: {str(e.orig)}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store booking: {e}")
            raise StoreError(f"Failed to store booking: {str(e)}") from e

        return booking

    def get(self, booking_id: UUID) -> Optional[Booking]:
        try:
            return self.db.query(Booking).filter(Booking.id == booking_id).first()
        except SQLAlchemyError as e:
            self._read_failed(f"load booking {booking_id}", e)

    def delete(self, booking_id: UUID) -> Optional[Booking]:
        """
        Remove a booking.

        Returns:
            The removed booking, or None if it did not exist
        """
        booking = self.get(booking_id)
        if not booking:
            return None

        try:
            self.db.delete(booking)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete booking {booking_id}: {e}")
            raise StoreError(f"Failed to delete booking: {str(e)}") from e

        return booking

    def _read_failed(self, action: str, error: SQLAlchemyError):
        self.db.rollback()
        logger.error(f"Failed to {action}: {error}")
        raise StoreError(f"Failed to {action}: {str(error)}") from error

    def _by_day(self, query: Query, bounds: Optional[Tuple[datetime, datetime]]) -> Query:
        if bounds is None:
            return query
        day_start, day_end = bounds
        return query.filter(Booking.start_at >= day_start, Booking.start_at <= day_end)
