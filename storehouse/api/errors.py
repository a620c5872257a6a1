"""
Translate domain exceptions into HTTP errors
"""
from fastapi import HTTPException, status

from storehouse.exceptions import (
    StorehouseError,
    ValidationError,
    NotFoundError,
    ForbiddenError,
    ConflictError,
)

STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_409_CONFLICT,
}


def to_http_exception(exc: StorehouseError) -> HTTPException:
    """Map a service error to the matching HTTP status"""
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )
