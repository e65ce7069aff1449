"""Ephemeral (single day) resource model"""

from sqlalchemy import Column, String, Date, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from poolbook.models.base import BaseModel


class EphemeralResource(BaseModel):
    """
    Extra vehicle offered to one organization for a single calendar day.
    Has no maintenance concept and stops being offered once its day has passed.
    """

    __tablename__ = "ephemeral_resources"

    organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False
    )
    label = Column(String(255), nullable=False)
    license_plate = Column(String(32), nullable=True)
    day = Column(Date, nullable=False)

    __table_args__ = (
        Index("ix_ephemeral_resources_org_day", "organization_id", "day"),
    )

    def __repr__(self):
        return f"<EphemeralResource(id={self.id}, label={self.label}, day={self.day})>"
