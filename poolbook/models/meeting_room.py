"""Meeting room model"""

from sqlalchemy import Column, String, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from poolbook.models.base import BaseModel


class MeetingRoom(BaseModel):
    """Meeting room owned by one organization, shareable through its meeting namespace"""

    __tablename__ = "meeting_rooms"

    organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=True)

    # Relationships
    organization = relationship("Organization", back_populates="meeting_rooms")

    def __repr__(self):
        return f"<MeetingRoom(id={self.id}, name={self.name})>"
