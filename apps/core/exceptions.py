"""
Custom exceptions for the TorunHut storefront
"""


class StorefrontException(Exception):
    """Base exception for all storefront errors"""
    status_code = 500
    details = None

    def __init__(self, message: str, code: str = "STOREFRONT_ERROR", status_code: int = None):
        self.message = message
        self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationException(StorefrontException):
    """Exception raised for validation errors (bad input, missing fields)"""
    status_code = 400

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(
            message=message,
            code="VALIDATION_ERROR"
        )


class StockException(StorefrontException):
    """Exception raised when a cart line asks for more units than are in stock"""
    status_code = 400

    def __init__(self, product_id: str, product_name: str, requested: int, available: int):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        self.details = f"Available: {available}, requested: {requested}"
        super().__init__(
            message=f"Insufficient stock for {product_name}",
            code="INSUFFICIENT_STOCK"
        )


class NotFoundException(StorefrontException):
    """Exception raised when an order, product or user id is unknown"""
    status_code = 404

    def __init__(self, resource: str, identifier: str = None):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND"
        )


class OrderIdUnavailableException(StorefrontException):
    """Exception raised when no free short order id could be drawn"""
    status_code = 503

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            message=f"Could not allocate an order id after {attempts} attempts",
            code="ORDER_ID_UNAVAILABLE"
        )


class MediaUploadException(StorefrontException):
    """Exception raised when the media host rejects or fails an upload"""
    status_code = 502

    def __init__(self, reason: str):
        self.details = reason
        super().__init__(
            message="Failed to upload image",
            code="UPLOAD_FAILED"
        )
