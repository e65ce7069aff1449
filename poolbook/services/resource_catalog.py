"""Resource catalog service for pool resources, meeting rooms and extra day resources"""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple, Union
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from poolbook.models.pool_resource import PoolResource, ResourceStatus
from poolbook.models.ephemeral_resource import EphemeralResource
from poolbook.models.meeting_room import MeetingRoom
from poolbook.services.exceptions import NotFoundError, StoreError, ValidationError
from poolbook.services.intervals import is_valid_range, parse_day, to_utc, utc_today
from poolbook.services.organization_service import OrganizationService

logger = logging.getLogger(__name__)

# Optional (unavailable_from, unavailable_until); a missing bound leaves that side open
MaintenanceWindow = Tuple[Optional[datetime], Optional[datetime]]


class ResourceCatalog:
    """
    Read access to bookable resources plus the two catalog commands:
    registering an extra resource for a day and switching maintenance status.
    """

    def __init__(self, db: Session):
        """Initialize with database session"""
        self.db = db

    def list_pool_resources(self, organization_id: Optional[UUID] = None) -> List[PoolResource]:
        """
        List pool resources ordered by ID.

        Args:
            organization_id: When given, only shared resources and those owned
                by this organization are returned

        Returns:
            List of PoolResource objects with their status and blackout window
        """
        query = self.db.query(PoolResource)
        if organization_id is not None:
            query = query.filter(
                or_(
                    PoolResource.organization_id.is_(None),
                    PoolResource.organization_id == organization_id,
                )
            )
        return query.order_by(PoolResource.id).all()

    def get_pool_resource(self, resource_id: UUID) -> Optional[PoolResource]:
        return self.db.query(PoolResource).filter(PoolResource.id == resource_id).first()

    def list_rooms(self, organization_id: UUID) -> List[MeetingRoom]:
        """Rooms owned by one organization"""
        return (
            self.db.query(MeetingRoom)
            .filter(MeetingRoom.organization_id == organization_id)
            .order_by(MeetingRoom.name, MeetingRoom.id)
            .all()
        )

    def list_visible_rooms(self, organization_id: UUID) -> List[MeetingRoom]:
        """Rooms owned by the organization or by any organization in its meeting namespace"""
        member_ids = OrganizationService(self.db).namespace_member_ids(organization_id)
        return (
            self.db.query(MeetingRoom)
            .filter(MeetingRoom.organization_id.in_(member_ids))
            .order_by(MeetingRoom.name, MeetingRoom.id)
            .all()
        )

    def get_room(self, room_id: UUID) -> Optional[MeetingRoom]:
        return self.db.query(MeetingRoom).filter(MeetingRoom.id == room_id).first()

    def list_ephemeral_resources(
        self, organization_id: UUID, day: Union[str, date]
    ) -> List[EphemeralResource]:
        """
        Extra resources offered to this organization on this calendar day.

        Nothing is offered once the day has passed.
        """
        day = parse_day(day)
        if day < utc_today():
            return []

        return (
            self.db.query(EphemeralResource)
            .filter(
                EphemeralResource.organization_id == organization_id,
                EphemeralResource.day == day,
            )
            .order_by(EphemeralResource.label, EphemeralResource.id)
            .all()
        )

    def is_offerable(self, resource: EphemeralResource) -> bool:
        """Whether the day of an extra resource has not passed yet"""
        return resource.day >= utc_today()

    def get_ephemeral_resource(self, resource_id: UUID) -> Optional[EphemeralResource]:
        return (
            self.db.query(EphemeralResource)
            .filter(EphemeralResource.id == resource_id)
            .first()
        )

    def create_ephemeral_resource(
        self,
        organization_id: UUID,
        label: str,
        day: Union[str, date],
        license_plate: Optional[str] = None,
    ) -> EphemeralResource:
        """
        Register an extra resource for one organization and day.

        Duplicate labels are allowed.

        Raises:
            ValidationError: If the label is empty or the day is malformed or past
            NotFoundError: If the organization does not exist
        """
        if not label or not label.strip():
            raise ValidationError("Label is required")

        day = parse_day(day)
        if day < utc_today():
            raise ValidationError(f"Cannot register an extra resource for past day {day.isoformat()}")

        OrganizationService(self.db).get(organization_id)

        resource = EphemeralResource(
            organization_id=organization_id,
            label=label.strip(),
            license_plate=license_plate.strip() if license_plate else None,
            day=day,
        )

        try:
            self.db.add(resource)
            self.db.commit()
            self.db.refresh(resource)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create extra resource for organization {organization_id}: {e}")
            raise StoreError(f"Failed to create extra resource: {str(e)}") from e

        logger.info(f"Created extra resource {resource.id} for organization {organization_id} on {day}")
        return resource

    def set_maintenance(
        self,
        resource_id: UUID,
        status: Union[str, ResourceStatus],
        window: Optional[MaintenanceWindow] = None,
    ) -> PoolResource:
        """
        Change the status of a pool resource.

        Returning to available clears the blackout window. Maintenance without
        a window blocks the resource for every time range.

        Raises:
            ValidationError: If status is unknown or the window is empty
            NotFoundError: If the resource does not exist
        """
        valid_statuses = [s.value for s in ResourceStatus]
        status_value = status.value if isinstance(status, ResourceStatus) else status
        if status_value not in valid_statuses:
            raise ValidationError(f"Invalid status '{status}'. Must be one of: {valid_statuses}")

        resource = self.get_pool_resource(resource_id)
        if not resource:
            raise NotFoundError(f"Pool resource {resource_id} not found")

        unavailable_from = unavailable_until = None
        if status_value == ResourceStatus.MAINTENANCE.value and window:
            unavailable_from, unavailable_until = window
            unavailable_from = to_utc(unavailable_from) if unavailable_from else None
            unavailable_until = to_utc(unavailable_until) if unavailable_until else None
            if (
                unavailable_from is not None
                and unavailable_until is not None
                and not is_valid_range(unavailable_from, unavailable_until)
            ):
                raise ValidationError("Maintenance window must end after it starts")

        resource.status = status_value
        resource.unavailable_from = unavailable_from
        resource.unavailable_until = unavailable_until

        try:
            self.db.commit()
            self.db.refresh(resource)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update status of pool resource {resource_id}: {e}")
            raise StoreError(f"Failed to update pool resource: {str(e)}") from e

        logger.info(
            f"Pool resource {resource_id} set to {status_value} "
            f"({unavailable_from} - {unavailable_until})"
        )
        return resource
