"""Health check endpoints"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from poolbook import __version__
from poolbook.database import get_db
from poolbook.models.base import utcnow

router = APIRouter(tags=["Health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint (no authentication required)

    Reports the service status and database connectivity
    """
    try:
        db.execute(text("SELECT 1")).scalar_one()
        database = "connected"
        overall_status = "healthy"
    except SQLAlchemyError as e:
        database = f"disconnected: {str(e)}"
        overall_status = "degraded"

    return {
        "status": overall_status,
        "version": __version__,
        "timestamp": utcnow().isoformat() + "Z",
        "services": {"database": database},
    }
