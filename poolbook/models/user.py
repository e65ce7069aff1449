"""User model"""

import enum
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from poolbook.models.base import BaseModel


class UserRole(str, enum.Enum):
    """Roles recognised by the reservation engine"""
    MEMBER = "member"
    ADMIN = "admin"


class User(BaseModel):
    """
    User model representing application users.
    Users belong to exactly one organization and own the bookings they create.
    """

    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    role = Column(String(50), default=UserRole.MEMBER.value, nullable=False)
    organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True
    )

    # Relationships
    organization = relationship("Organization", back_populates="users")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
