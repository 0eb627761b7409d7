"""Domain errors raised by the catalog, user directory and cart engine.

Each error knows the HTTP status it maps to; the handlers in ``shopcart.main``
turn them into ``{"message": ...}`` responses.
"""
from fastapi import status


class ShopError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidOperation(InvalidArgument):
    default_message = "Operation not allowed"


class Conflict(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Already exists"


class NotFound(ShopError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Unavailable(ShopError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Stock unavailable"


class Discontinued(ShopError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Product no longer available"


class AuthenticationFailed(ShopError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class PermissionDenied(ShopError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Admin access required"


class InternalFailure(ShopError):
    pass
