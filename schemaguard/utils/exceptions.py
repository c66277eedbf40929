"""Custom exceptions for schemaguard."""


class SchemaGuardError(Exception):
    """Base exception for all schemaguard errors."""
    pass


class ConfigurationError(SchemaGuardError):
    """Raised when configuration is invalid or missing."""
    pass


class SchemaError(SchemaGuardError):
    """Raised when there's an error with schema parsing or loading."""
    pass


class ValidationError(SchemaGuardError):
    """Raised when a validated query was rejected.

    The validator itself never raises; this is only produced on request by
    callers that prefer exceptions over sentinel strings.
    """

    def __init__(self, message: str, sentinel: str = None):
        """Initialize validation error.

        Args:
            message: Reason the query was rejected
            sentinel: The sentinel string returned by the validator
        """
        super().__init__(message)
        self.sentinel = sentinel
