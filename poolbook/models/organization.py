"""Organization model"""

from sqlalchemy import Column, String, JSON
from sqlalchemy.orm import relationship
from poolbook.models.base import BaseModel


class Organization(BaseModel):
    """
    Organization model representing a tenant.
    Owns users, meeting rooms, day-scoped extra vehicles and bookings.
    Organizations sharing a meeting_namespace share one meeting room pool.
    """

    __tablename__ = "organizations"

    name = Column(String(255), unique=True, nullable=False)
    code = Column(String(64), unique=True, nullable=False, index=True)
    enabled_sections = Column(JSON, nullable=False, default=list)
    meeting_namespace = Column(String(100), nullable=True, index=True)

    # Relationships
    users = relationship("User", back_populates="organization", cascade="all, delete-orphan")
    meeting_rooms = relationship(
        "MeetingRoom", back_populates="organization", cascade="all, delete-orphan"
    )

    def has_section(self, section: str) -> bool:
        return section in (self.enabled_sections or [])

    def __repr__(self):
        return f"<Organization(id={self.id}, name={self.name})>"
