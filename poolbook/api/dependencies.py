"""API dependencies for caller identity and organization resolution"""

from typing import Optional
from uuid import UUID
from fastapi import Depends, Header, Query, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from poolbook.api.errors import http_problem
from poolbook.config import settings
from poolbook.database import get_db
from poolbook.services.organization_service import OrganizationService
from poolbook.services.references import CallerIdentity


def get_caller_identity(
    authorization: Optional[str] = Header(None),
) -> Optional[CallerIdentity]:
    """
    Caller identity from the bearer token issued by the login service.

    The token is only decoded and checked against the shared secret; no
    credentials are handled here.

    Returns:
        CallerIdentity, or None for anonymous requests

    Raises:
        HTTPException: 401 if a token is present but unusable
    """
    if not authorization:
        return None

    # Extract token from "Bearer <token>"
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise http_problem(status.HTTP_401_UNAUTHORIZED, "Invalid authorization header format")

    try:
        payload = jwt.decode(
            parts[1], settings.jwt_signing_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        raise http_problem(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token")

    try:
        return CallerIdentity(
            user_id=UUID(payload["sub"]),
            organization_id=UUID(payload["organization_id"]),
            role=payload.get("role") or "member",
        )
    except (KeyError, TypeError, ValueError):
        raise http_problem(status.HTTP_401_UNAUTHORIZED, "Invalid token payload")


def require_admin(
    caller: Optional[CallerIdentity] = Depends(get_caller_identity),
) -> CallerIdentity:
    """Caller identity of an admin; 401 when anonymous, 403 for members"""
    if caller is None:
        raise http_problem(status.HTTP_401_UNAUTHORIZED, "Authentication required")
    if not caller.is_admin:
        raise http_problem(
            status.HTTP_403_FORBIDDEN,
            f"Role '{caller.role}' does not have permission to access this resource",
        )
    return caller


def get_organization_id(
    org_id: Optional[UUID] = Query(None, description="Organization UUID for anonymous clients"),
    caller: Optional[CallerIdentity] = Depends(get_caller_identity),
) -> UUID:
    """
    Organization a request acts for.

    Authenticated callers always act for their own organization; anonymous
    legacy clients name it with the org_id query parameter.
    """
    if caller is not None:
        if org_id is not None and org_id != caller.organization_id:
            raise http_problem(status.HTTP_403_FORBIDDEN, "Cannot access another organization")
        return caller.organization_id

    if org_id is None:
        raise http_problem(status.HTTP_400_BAD_REQUEST, "org_id is required")
    return org_id


def ensure_section(db: Session, organization_id: UUID, section: str) -> None:
    """
    Reject requests for a feature section the organization has not enabled.

    Raises:
        HTTPException: 403 if the section is disabled
        NotFoundError: If the organization does not exist
    """
    org = OrganizationService(db).get(organization_id)
    if not org.has_section(section):
        raise http_problem(
            status.HTTP_403_FORBIDDEN, f"Section '{section}' is not enabled for this organization"
        )


def require_cars_section(
    organization_id: UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
) -> UUID:
    ensure_section(db, organization_id, "cars")
    return organization_id


def require_meetings_section(
    organization_id: UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
) -> UUID:
    ensure_section(db, organization_id, "meetings")
    return organization_id
