"""
Shared error types for Shelf services.
"""


class ValidationIssue(ValueError):
    def __init__(self, message: str, field: str = "unknown", error_type: str = "invalid"):
        super().__init__(message)
        self.field = field
        self.error_type = error_type


class StorageError(RuntimeError):
    """Raised when a read or write against durable storage fails."""


class StorageUnavailableError(StorageError):
    """Raised when the storage backend cannot be reached or initialized."""


class PatternNotFoundError(LookupError):
    """Raised when a markdown pattern does not exist on the shelf."""
