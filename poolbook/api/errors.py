"""RFC 7807 Problem Details error response formatting"""

import logging
from typing import Optional, Dict, Any, List
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from poolbook.services.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ReservationError,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ValidationErrorDetail(BaseModel):
    """Validation error detail for a specific field"""
    field: str
    message: str


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs"""
    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="URI reference identifying the specific occurrence")
    errors: Optional[List[ValidationErrorDetail]] = Field(None, description="Validation errors")


# Default error types based on status code
ERROR_TYPES = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    500: "internal_server_error",
}

ERROR_TITLES = {
    400: "Validation Error",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    500: "Internal Server Error",
}


def problem_detail(
    status_code: int,
    detail: str,
    title: Optional[str] = None,
    error_type: Optional[str] = None,
    instance: Optional[str] = None,
    errors: Optional[List[Dict[str, str]]] = None
) -> Dict[str, Any]:
    """
    Build an RFC 7807 problem document

    Args:
        status_code: HTTP status code
        detail: Detailed error message
        title: Short error title (defaults to one based on status code)
        error_type: Error type slug (defaults to one based on status code)
        instance: Request path or identifier
        errors: List of validation errors with field and message

    Returns:
        Problem details dictionary
    """
    problem = {
        "type": f"https://api.poolbook.app/errors/{error_type or ERROR_TYPES.get(status_code, 'error')}",
        "title": title or ERROR_TITLES.get(status_code, "Error"),
        "status": status_code,
        "detail": detail
    }

    if instance:
        problem["instance"] = instance

    if errors:
        problem["errors"] = errors

    return problem


def create_error_response(
    status_code: int,
    detail: str,
    title: Optional[str] = None,
    instance: Optional[str] = None,
    errors: Optional[List[Dict[str, str]]] = None
) -> JSONResponse:
    """Create an RFC 7807 compliant error response"""
    return JSONResponse(
        status_code=status_code,
        content=problem_detail(status_code, detail, title=title, instance=instance, errors=errors)
    )


def http_problem(status_code: int, detail: str, instance: Optional[str] = None) -> HTTPException:
    """HTTPException carrying a problem document, for use inside dependencies"""
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(
        status_code=status_code,
        detail=problem_detail(status_code, detail, instance=instance),
        headers=headers,
    )


# Domain error -> HTTP status
STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
}


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    """Render a domain error as problem details"""
    status_code = next(
        (code for error_class, code in STATUS_BY_ERROR.items() if isinstance(exc, error_class)),
        status.HTTP_400_BAD_REQUEST,
    )
    return create_error_response(status_code, exc.message, instance=request.url.path)


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Render a store failure as an internal error without leaking database details"""
    logger.error(f"Store failure on {request.method} {request.url.path}: {exc}")
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An internal server error occurred",
        instance=request.url.path,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Render a database failure raised outside the booking store like a store failure"""
    logger.error(f"Database failure on {request.method} {request.url.path}: {exc}")
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An internal server error occurred",
        instance=request.url.path,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReservationError, reservation_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
