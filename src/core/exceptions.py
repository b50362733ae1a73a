# src/core/exceptions.py


# ================================
# CUSTOM EXCEPTIONS
# ================================
class CommerceException(Exception):
    """Base exception for engine operations"""
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationException(CommerceException):
    """Raised when input is malformed or breaks a quantity/ownership rule"""
    def __init__(self, message: str = "Validation failed"):
        super().__init__(message, status_code=400)


class InvalidAddressException(ValidationException):
    """Raised when the delivery address does not belong to the buyer"""
    def __init__(self, message: str = "Invalid delivery address"):
        super().__init__(message)


class EmptyCartException(ValidationException):
    """Raised when settling a cart with no items"""
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class PermissionDeniedException(CommerceException):
    """Raised when the actor may not touch the order or listing"""
    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, status_code=403)


class NotFoundException(CommerceException):
    """Raised when a resource is not found"""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class InsufficientStockException(CommerceException):
    """Raised when there's insufficient stock"""
    def __init__(self, message: str = "Insufficient stock", inventory_id: int = None):
        self.inventory_id = inventory_id
        super().__init__(message, status_code=409)


class PaymentVerificationFailedException(CommerceException):
    """Raised when the payment assertion is rejected by the gateway oracle"""
    def __init__(self, message: str = "Payment verification failed"):
        super().__init__(message, status_code=402)


class ConflictException(CommerceException):
    """Raised on lock timeouts, deadlocks and serialization failures"""
    def __init__(self, message: str = "Concurrent update conflict, retry the request"):
        super().__init__(message, status_code=409)


class InvalidTransitionException(CommerceException):
    """Raised when an order item status change is not allowed"""
    def __init__(self, message: str = "Invalid status transition"):
        super().__init__(message, status_code=422)


class ProxyMergeConflictException(CommerceException):
    """Raised when a proxy purchase would merge into independently stocked listing"""
    def __init__(self, message: str = "Listing holds independent stock"):
        super().__init__(message, status_code=422)


class InvariantViolationException(CommerceException):
    """Raised when a write would break a stock or money invariant"""
    def __init__(self, message: str = "Invariant violation"):
        super().__init__(message, status_code=500)
