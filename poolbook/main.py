"""Main FastAPI application entry point"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from poolbook import __version__
from poolbook.api.bookings import router as bookings_router
from poolbook.api.errors import register_exception_handlers
from poolbook.api.health import router as health_router
from poolbook.api.resources import router as resources_router
from poolbook.config import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title="Poolbook Reservation API",
    description="Booking of pool vehicles, extra day vehicles and meeting rooms without double-booking",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

register_exception_handlers(app)

# Include routers
app.include_router(health_router)
app.include_router(resources_router)
app.include_router(bookings_router)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Poolbook Reservation API",
        "version": __version__,
        "status": "running",
        "environment": settings.environment,
    }
