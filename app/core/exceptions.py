from fastapi import status


class MarketplaceError(Exception):
    """Base class for domain errors rendered as ``{"message": ...}`` bodies."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientFundsError(ValidationError):
    pass


class AuthenticationError(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND


class StorageError(MarketplaceError):
    status_code = status.HTTP_502_BAD_GATEWAY
