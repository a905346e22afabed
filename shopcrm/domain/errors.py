"""Domain errors raised by the application services.

Each error carries the HTTP status and machine-readable code it maps to; the
handler registered in ``shopcrm.main`` turns them into ``{"detail", "code"}``
responses.
"""


class ShopError(Exception):
    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(ShopError):
    code = "VALIDATION_ERROR"


class EmptyCartError(ValidationFailed):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class ProductUnavailableError(ValidationFailed):
    def __init__(self, product_name: str):
        super().__init__(f'Product "{product_name}" is currently unavailable')
        self.product_name = product_name


class InsufficientStockError(ValidationFailed):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str):
        super().__init__(f'Insufficient stock for product "{product_name}"')
        self.product_name = product_name


class InvalidStatusTransition(ValidationFailed):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot change order status from {current} to {target}")
        self.current = current
        self.target = target


class NotFoundError(ShopError):
    status_code = 404
    code = "NOT_FOUND"


class PermissionDenied(ShopError):
    status_code = 403
    code = "FORBIDDEN"


class ConflictError(ShopError):
    status_code = 409
    code = "CONFLICT"


class EmailDeliveryError(ShopError):
    status_code = 502
    code = "EMAIL_DELIVERY_FAILED"
