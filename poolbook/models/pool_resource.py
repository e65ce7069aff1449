"""Pool resource model"""

import enum
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from poolbook.models.base import BaseModel


class ResourceStatus(str, enum.Enum):
    """Pool resource status"""
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"


class PoolResource(BaseModel):
    """
    Durable shared resource such as a pool vehicle.

    A resource without an organization belongs to the shared pool and is
    offered to every organization. In maintenance status the optional
    unavailable_from/unavailable_until window limits the blackout; without
    a window the resource is blocked for all time ranges.
    """

    __tablename__ = "pool_resources"

    name = Column(String(255), nullable=False)
    license_plate = Column(String(32), unique=True, nullable=True)
    organization_id = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=True, index=True
    )
    status = Column(
        String(50), nullable=False, default=ResourceStatus.AVAILABLE.value, index=True
    )
    unavailable_from = Column(DateTime, nullable=True)
    unavailable_until = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<PoolResource(id={self.id}, name={self.name}, status={self.status})>"
