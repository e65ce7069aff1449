"""Booking model"""

import enum
from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from poolbook.models.base import BaseModel


class ResourceClass(str, enum.Enum):
    """Kind of resource a booking references"""
    POOL = "pool"
    EPHEMERAL = "ephemeral"
    ROOM = "room"


class Booking(BaseModel):
    """
    Reservation of exactly one resource for the half-open interval [start_at, end_at).

    organization_id is the tenant the booking belongs to. For meeting rooms
    shared through a namespace it is the room owner and source_organization_id
    records the organization that actually made the booking. user_id is null
    for legacy bookings made without a signed-in user.
    """

    __tablename__ = "bookings"

    organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False
    )
    source_organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=True, index=True
    )
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Exactly one of these is set
    pool_resource_id = Column(
        UUID(as_uuid=True), ForeignKey("pool_resources.id", ondelete="CASCADE"), nullable=True
    )
    ephemeral_resource_id = Column(
        UUID(as_uuid=True), ForeignKey("ephemeral_resources.id", ondelete="CASCADE"), nullable=True
    )
    room_id = Column(
        UUID(as_uuid=True), ForeignKey("meeting_rooms.id", ondelete="CASCADE"), nullable=True
    )

    requester_name = Column(String(255), nullable=False)
    title = Column(String(255), nullable=True)
    note = Column(Text, nullable=False, default="")
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    # Relationships
    pool_resource = relationship("PoolResource")
    ephemeral_resource = relationship("EphemeralResource")
    room = relationship("MeetingRoom")

    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_bookings_valid_range"),
        CheckConstraint(
            "(CASE WHEN pool_resource_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN ephemeral_resource_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN room_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_bookings_single_resource",
        ),
        Index("ix_bookings_org_start", "organization_id", "start_at"),
        Index("ix_bookings_pool_window", "pool_resource_id", "start_at", "end_at"),
        Index("ix_bookings_ephemeral_window", "ephemeral_resource_id", "start_at", "end_at"),
        Index("ix_bookings_room_window", "room_id", "start_at", "end_at"),
    )

    @property
    def resource_class(self) -> ResourceClass:
        if self.pool_resource_id is not None:
            return ResourceClass.POOL
        if self.ephemeral_resource_id is not None:
            return ResourceClass.EPHEMERAL
        return ResourceClass.ROOM

    @property
    def resource_id(self):
        return self.pool_resource_id or self.ephemeral_resource_id or self.room_id

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, {self.resource_class.value}={self.resource_id}, "
            f"start={self.start_at}, end={self.end_at})>"
        )
