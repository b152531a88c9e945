"""Custom exceptions for the expense tracker application."""


class ExpenseTrackerException(Exception):
    """Base exception for all expense tracker errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(ExpenseTrackerException):
    """Raised when input validation fails."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class NotFoundError(ExpenseTrackerException):
    """Raised when a record is not found."""

    def __init__(self, message: str = "Record not found"):
        super().__init__(message, status_code=404)


class ConflictError(ExpenseTrackerException):
    """Raised when there's a conflict (e.g., a second budget for the same month)."""

    def __init__(self, message: str = "Record conflict"):
        super().__init__(message, status_code=409)


class StorageError(ExpenseTrackerException):
    """Raised when storage operations fail."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, status_code=500)
