"""
Exceptions raised by the svckit helpers.
"""

class SvcKitError(Exception):
    """Base exception for all svckit errors."""
    pass

class ConfigurationError(SvcKitError):
    """Raised when settings are missing or invalid."""
    pass

class InvalidConfigurationError(ConfigurationError, ValueError):
    """Raised when a logger option has an unusable value, e.g. max_age_days <= 0."""
    pass

class SinkFailureError(SvcKitError):
    """Raised when a log output (file sink) could not be created."""
    pass

class PanicError(SvcKitError):
    """Raised by ContextLogger.panic after the record has been written."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
