"""
Custom Exceptions for AllCare Subscriptions

Hierarchical exception classes for proper error handling across layers.
The subscription controller is the boundary that turns these into
user-facing error messages.
"""

from typing import Optional, Dict, Any


class AllCareError(Exception):
    """Base exception for all AllCare errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(AllCareError):
    """Raised when input validation fails."""
    pass


class CardValidationError(ValidationError):
    """Raised when a card number, expiry date or CVV is malformed."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if field:
            details["field"] = field
        super().__init__(message, details, original_error)


class InsufficientBalanceError(AllCareError):
    """Raised when a wallet debit would take the balance below zero."""

    def __init__(
        self,
        message: str = "Insufficient wallet balance",
        balance: Optional[float] = None,
        requested: Optional[float] = None,
    ):
        details = {}
        if balance is not None:
            details["balance"] = balance
        if requested is not None:
            details["requested"] = requested
        super().__init__(message, details)


class StoreError(AllCareError):
    """Raised when document store operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path:
            details["path"] = path
        super().__init__(message, details, original_error)


class NotFoundError(StoreError):
    """Raised when a requested document is not found."""
    pass


class ConfigurationError(AllCareError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
