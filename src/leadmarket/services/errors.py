"""Service-layer exceptions.

Each carries the HTTP status the routes translate it to.
"""


class MarketplaceError(Exception):
    """Base class for business-rule failures raised by services."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationFailed(MarketplaceError):
    status_code = 400


class InsufficientBalanceError(MarketplaceError):
    status_code = 400

    def __init__(self, message: str = "Insufficient balance"):
        super().__init__(message)


class PermissionDeniedError(MarketplaceError):
    status_code = 403


class NotFoundError(MarketplaceError):
    status_code = 404


class ConflictError(MarketplaceError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Raised when a status transition is not allowed."""

    def __init__(self, entity: str, current_status: str, target_status: str):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Invalid {entity} transition from {current_status} to {target_status}"
        )


class PaymentProviderError(MarketplaceError):
    """The external payment processor failed or is not configured."""

    status_code = 502


class PaymentProviderUnavailable(PaymentProviderError):
    status_code = 503
