"""Exception hierarchy for nats2ping.

Only configuration errors are meant to reach the process boundary. Every
other error is raised close to where it happens and is logged and recovered
by the component that owns the failing operation.
"""

from typing import Any


class Nats2PingError(Exception):
    """Base exception for all nats2ping errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code for programmatic handling
            details: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


class DomainError(Nats2PingError):
    """Base class for domain-layer errors."""

    pass


class AdmissionError(DomainError):
    """Raised when a destination cannot be admitted into the table."""

    def __init__(self, name: str, reason: str, **kwargs: Any) -> None:
        """
        Initialize admission error.

        Args:
            name: Destination name (may be empty)
            reason: Reason for rejection
            **kwargs: Additional error details
        """
        message = f"Destination '{name}' rejected: {reason}"
        details = {"name": name, "reason": reason, **kwargs.pop("details", {})}
        super().__init__(
            message, error_code=kwargs.pop("error_code", "ADMISSION_ERROR"), details=details
        )


class InvalidDestinationError(AdmissionError):
    """Raised when a destination has no address or an unusable name."""

    def __init__(self, name: str, reason: str = "no address", **kwargs: Any) -> None:
        super().__init__(name, reason, error_code="INVALID_DESTINATION", **kwargs)


class DuplicateDestinationError(AdmissionError):
    """Raised when a destination name is already in the table."""

    def __init__(self, name: str, **kwargs: Any) -> None:
        super().__init__(name, "duplicate name", error_code="DUPLICATE_DESTINATION", **kwargs)


class ProbeError(AdmissionError):
    """Raised when a probe cannot be created for an address."""

    def __init__(self, name: str, address: str, reason: str, **kwargs: Any) -> None:
        """
        Initialize probe error.

        Args:
            name: Destination name
            address: Address that could not be probed
            reason: Underlying failure
            **kwargs: Additional error details
        """
        super().__init__(
            name,
            f"cannot probe '{address}': {reason}",
            error_code="PROBE_ERROR",
            details={"address": address, **kwargs.pop("details", {})},
        )


class MalformedPayloadError(DomainError):
    """Raised when an inbound payload cannot be decoded."""

    def __init__(self, topic: str, reason: str, **kwargs: Any) -> None:
        message = f"Malformed payload on '{topic}': {reason}"
        details = {"topic": topic, "reason": reason, **kwargs.pop("details", {})}
        super().__init__(message, error_code="MALFORMED_PAYLOAD", details=details)


class InfrastructureError(Nats2PingError):
    """Base class for infrastructure-layer errors."""

    pass


class BusConnectionError(InfrastructureError):
    """Raised when the message bus cannot be reached or is not connected."""

    def __init__(
        self, service: str, endpoint: str, reason: str | None = None, **kwargs: Any
    ) -> None:
        """
        Initialize connection error.

        Args:
            service: Service name (e.g., "NATS")
            endpoint: Connection endpoint
            reason: Failure reason
            **kwargs: Additional error details
        """
        message = f"Failed to connect to {service} at {endpoint}"
        if reason:
            message += f": {reason}"
        details = {
            "service": service,
            "endpoint": endpoint,
            "reason": reason,
            **kwargs.pop("details", {}),
        }
        super().__init__(message, error_code="CONNECTION_ERROR", details=details)


class ConfigurationError(InfrastructureError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, config_key: str, reason: str, **kwargs: Any) -> None:
        """
        Initialize configuration error.

        Args:
            config_key: Configuration key or file that has issues
            reason: Reason for configuration error
            **kwargs: Additional error details
        """
        message = f"Configuration error for '{config_key}': {reason}"
        details = {
            "config_key": config_key,
            "reason": reason,
            **kwargs.pop("details", {}),
        }
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details)
