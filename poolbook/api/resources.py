"""Resource catalog and availability endpoints"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from poolbook.api.dependencies import (
    get_caller_identity,
    get_organization_id,
    require_admin,
    require_cars_section,
    require_meetings_section,
)
from poolbook.api.errors import http_problem
from poolbook.database import get_db
from poolbook.schemas.availability import AvailabilityResponse
from poolbook.schemas.resource import (
    EphemeralResourceCreate,
    EphemeralResourceResponse,
    MaintenanceUpdate,
    MeetingRoomResponse,
    PoolResourceResponse,
)
from poolbook.services.references import CallerIdentity
from poolbook.services.reservation_engine import ReservationEngine
from poolbook.services.resource_catalog import ResourceCatalog

router = APIRouter(prefix="/api/v1", tags=["Resources"])


@router.get("/pool-resources", response_model=List[PoolResourceResponse])
def list_pool_resources(
    org_id: Optional[UUID] = Query(None, description="Limit to resources visible to this organization"),
    caller: Optional[CallerIdentity] = Depends(get_caller_identity),
    db: Session = Depends(get_db),
):
    """
    List pool resources with their maintenance status

    Authenticated callers only see shared resources and their own organization's
    """
    organization_id = caller.organization_id if caller else org_id
    return ResourceCatalog(db).list_pool_resources(organization_id)


@router.patch(
    "/pool-resources/{resource_id}/maintenance",
    response_model=PoolResourceResponse,
)
def set_maintenance(
    resource_id: UUID,
    update: MaintenanceUpdate,
    request: Request,
    admin: CallerIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Put a pool resource into maintenance, optionally for a window, or back to available (admin only)"""
    catalog = ResourceCatalog(db)
    resource = catalog.get_pool_resource(resource_id)
    if resource and resource.organization_id not in (None, admin.organization_id):
        raise http_problem(
            status.HTTP_404_NOT_FOUND,
            f"Pool resource {resource_id} not found",
            instance=request.url.path,
        )

    window = None
    if update.unavailable_from or update.unavailable_until:
        window = (update.unavailable_from, update.unavailable_until)
    return catalog.set_maintenance(resource_id, update.status, window)


@router.get("/rooms", response_model=List[MeetingRoomResponse])
def list_rooms(
    organization_id: UUID = Depends(require_meetings_section),
    db: Session = Depends(get_db),
):
    """List meeting rooms of the organization and of its meeting namespace"""
    return ResourceCatalog(db).list_visible_rooms(organization_id)


@router.get("/ephemeral-resources", response_model=List[EphemeralResourceResponse])
def list_ephemeral_resources(
    day: str = Query(..., alias="date", description="Day (YYYY-MM-DD)"),
    organization_id: UUID = Depends(require_cars_section),
    db: Session = Depends(get_db),
):
    """List the organization's extra resources for one day"""
    return ResourceCatalog(db).list_ephemeral_resources(organization_id, day)


@router.post(
    "/ephemeral-resources",
    response_model=EphemeralResourceResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_ephemeral_resource(
    payload: EphemeralResourceCreate,
    organization_id: UUID = Depends(require_cars_section),
    db: Session = Depends(get_db),
):
    """Register an extra resource for one day"""
    return ResourceCatalog(db).create_ephemeral_resource(
        organization_id, payload.label, payload.day, payload.license_plate
    )


@router.get("/availability", response_model=List[AvailabilityResponse])
def get_availability(
    start: Optional[datetime] = Query(None, description="Window start"),
    end: Optional[datetime] = Query(None, description="Window end (exclusive)"),
    organization_id: UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
):
    """
    Availability of every resource visible to the organization

    Without a window every resource that is not blocked indefinitely is reported available
    """
    return ReservationEngine(db).availability(organization_id, start, end)
