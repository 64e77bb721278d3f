"""Custom exceptions for the ERP application."""


class ERPError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(ERPError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(ERPError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ConcurrencyError(ERPError):
    """Raised when a document was modified since the caller last read it."""
    def __init__(self, document_label, expected_version, current_version):
        message = (
            f"{document_label} was modified by another user "
            f"(expected version {expected_version}, current {current_version})"
        )
        super().__init__(message, 409, {
            'expected_version': expected_version,
            'current_version': current_version,
        })


class PricingError(BusinessLogicError):
    """Base class for line-item validation failures."""
    code = 'PricingError'
    field = None

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)

    def to_dict(self):
        rv = super().to_dict()
        rv['code'] = self.code
        rv['field'] = self.field
        return rv

    def to_line_error(self, line_index):
        return {
            'line': line_index,
            'field': self.field,
            'code': self.code,
            'message': self.message,
        }


class InvalidQuantity(PricingError):
    """Raised when a line quantity is negative or not a number."""
    code = 'InvalidQuantity'
    field = 'quantity'

    def __init__(self, value, message=None):
        super().__init__(message or f"Quantity must be a non-negative number, got {value!r}")
        self.value = value


class InvalidPrice(PricingError):
    """Raised when a unit cost or unit price is negative or not a number."""
    code = 'InvalidPrice'

    def __init__(self, field, value, message=None):
        self.field = field
        super().__init__(message or f"{field} must be a non-negative amount, got {value!r}")
        self.value = value


class InvalidPercentage(PricingError):
    """Raised when a percentage field cannot be read as a number."""
    code = 'InvalidPercentage'

    def __init__(self, field, value, message=None):
        self.field = field
        super().__init__(message or f"{field} must be a number, got {value!r}")
        self.value = value


class InvalidDocument(PricingError):
    """Raised when aggregation aborts because one or more lines are invalid."""
    code = 'InvalidDocument'

    def __init__(self, line_errors):
        self.line_errors = list(line_errors)
        count = len(self.line_errors)
        super().__init__(
            f"Document has {count} invalid line{'s' if count != 1 else ''}",
            payload={'errors': self.line_errors}
        )


class ExtractionFailed(ERPError):
    """Raised when the external document-extraction service fails or returns garbage."""
    def __init__(self, message="Document extraction failed", payload=None):
        super().__init__(message, 502, payload)
