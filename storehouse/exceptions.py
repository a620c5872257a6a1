"""
Domain exceptions raised by the service layer
"""


class StorehouseError(Exception):
    """Base exception for storehouse errors"""
    pass


class ValidationError(StorehouseError):
    """Malformed or semantically invalid input"""
    pass


class NotFoundError(StorehouseError):
    """Referenced order, product or user does not exist"""
    pass


class ForbiddenError(StorehouseError):
    """Operation not permitted for the caller's role"""
    pass


class ConflictError(StorehouseError):
    """Order was modified concurrently"""
    pass
