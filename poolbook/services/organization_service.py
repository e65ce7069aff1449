"""Organization service for tenant lookups and settings"""

import logging
from typing import Iterable, List, Optional
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from poolbook.models.organization import Organization
from poolbook.services.exceptions import NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

# Feature sections an organization can enable
KNOWN_SECTIONS = ("cars", "meetings")


class OrganizationService:
    """
    Service for reading organizations and changing their mutable settings.
    Organizations are provisioned elsewhere; only the enabled sections and the
    meeting namespace change during normal operation.
    """

    def __init__(self, db: Session):
        """Initialize with database session"""
        self.db = db

    def get(self, organization_id: UUID) -> Organization:
        """
        Get an organization by ID.

        Raises:
            NotFoundError: If the organization does not exist
        """
        org = self.db.query(Organization).filter(Organization.id == organization_id).first()
        if not org:
            raise NotFoundError(f"Organization {organization_id} not found")
        return org

    def resolve_by_code(self, code: str) -> Organization:
        """
        Resolve an organization from its access code, ignoring case.

        Raises:
            ValidationError: If the code is empty
            NotFoundError: If no organization uses the code
        """
        if not code or not code.strip():
            raise ValidationError("Organization code is required")

        org = (
            self.db.query(Organization)
            .filter(func.lower(Organization.code) == code.strip().lower())
            .first()
        )
        if not org:
            raise NotFoundError("Unknown organization code")
        return org

    def namespace_member_ids(self, organization_id: UUID) -> List[UUID]:
        """IDs of all organizations sharing the meeting namespace, the organization included"""
        org = self.get(organization_id)
        if not org.meeting_namespace:
            return [org.id]

        rows = (
            self.db.query(Organization.id)
            .filter(Organization.meeting_namespace == org.meeting_namespace)
            .all()
        )
        return [row[0] for row in rows]

    def set_enabled_sections(self, organization_id: UUID, sections: Iterable[str]) -> Organization:
        """
        Replace the enabled feature sections.

        Raises:
            ValidationError: If a section is not one of KNOWN_SECTIONS
        """
        sections = list(dict.fromkeys(sections))
        unknown = [s for s in sections if s not in KNOWN_SECTIONS]
        if unknown:
            raise ValidationError(
                f"Unknown sections {unknown}. Must be one of: {list(KNOWN_SECTIONS)}"
            )

        org = self.get(organization_id)
        org.enabled_sections = sections
        self._commit(org)
        logger.info(f"Organization {org.id} sections set to {sections}")
        return org

    def set_meeting_namespace(
        self, organization_id: UUID, namespace: Optional[str]
    ) -> Organization:
        """Join a meeting namespace, or leave it when namespace is empty"""
        org = self.get(organization_id)
        org.meeting_namespace = namespace.strip() if namespace and namespace.strip() else None
        self._commit(org)
        logger.info(f"Organization {org.id} meeting namespace set to {org.meeting_namespace}")
        return org

    def _commit(self, org: Organization) -> None:
        org_id = org.id
        try:
            self.db.commit()
            self.db.refresh(org)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update organization {org_id}: {e}")
            raise StoreError(f"Failed to update organization: {str(e)}") from e
