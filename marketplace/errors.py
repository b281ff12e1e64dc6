"""Domain errors raised by the services and mapped to HTTP responses by the routers."""


class MarketplaceError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(MarketplaceError):
    status_code = 400
    default_message = "Invalid request"


class EmptyCartError(MarketplaceError):
    status_code = 400
    default_message = "Cart is empty or contains only items from inactive suppliers"


class NotFoundError(MarketplaceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(MarketplaceError):
    status_code = 409
    default_message = "Conflict with existing data"


class OrderCreationFailed(MarketplaceError):
    status_code = 500
    default_message = "Failed to create order"


class InternalError(MarketplaceError):
    status_code = 500
    default_message = "Internal server error"
