"""rhlock exception classes."""


class RhlockError(Exception):
    """Base exception for all rhlock errors."""
    pass


class NetworkError(RhlockError):
    """Raised when the lock registry cannot be reached or times out."""
    pass


class RegistryError(RhlockError):
    """Raised when the lock registry answers with something unusable."""
    pass


class RegistryStatusError(RegistryError):
    """Raised when the lock registry returns a non-success status code."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class RegistryResponseError(RegistryError):
    """Raised when the lock registry body is empty or cannot be decoded."""
    pass


class RegistryDisabledError(RegistryError):
    """Raised when no registry base URL is configured."""
    pass


class ConfigError(RhlockError):
    """Raised when a configuration file cannot be read or parsed."""
    pass
