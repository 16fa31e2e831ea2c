"""Exception types for the health check."""


class HealthCheckError(Exception):
    """Base exception for health check failures."""
    pass


class ConfigurationError(HealthCheckError):
    """Configuration could not be loaded or is invalid."""
    pass


class ServiceEnumerationError(HealthCheckError):
    """The host's service list could not be retrieved."""
    pass


class DatabaseError(HealthCheckError):
    """Connection to an instance or statement execution failed."""
    pass
