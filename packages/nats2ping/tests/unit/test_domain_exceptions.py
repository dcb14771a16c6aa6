"""Unit tests for the exception hierarchy."""

from nats2ping.domain.exceptions import (
    AdmissionError,
    BusConnectionError,
    ConfigurationError,
    DomainError,
    DuplicateDestinationError,
    InfrastructureError,
    InvalidDestinationError,
    MalformedPayloadError,
    Nats2PingError,
    ProbeError,
)


class TestExceptionHierarchy:
    """Test exception classes and their details."""

    def test_base_error_defaults(self) -> None:
        error = Nats2PingError("boom")

        assert error.message == "boom"
        assert error.error_code == "Nats2PingError"
        assert error.details == {}

    def test_admission_errors(self) -> None:
        """Test every admission failure is an AdmissionError with its own code."""
        invalid = InvalidDestinationError("router")
        duplicate = DuplicateDestinationError("router")
        probe = ProbeError("router", "no.such.host", "unknown host")

        for error in (invalid, duplicate, probe):
            assert isinstance(error, AdmissionError)
            assert isinstance(error, DomainError)
            assert error.details["name"] == "router"

        assert invalid.error_code == "INVALID_DESTINATION"
        assert duplicate.error_code == "DUPLICATE_DESTINATION"
        assert probe.error_code == "PROBE_ERROR"
        assert probe.details["address"] == "no.such.host"
        assert "unknown host" in probe.message

    def test_invalid_destination_reason(self) -> None:
        error = InvalidDestinationError("Living Room TV", "name is not a valid subject token")

        assert error.error_code == "INVALID_DESTINATION"
        assert error.details["reason"] == "name is not a valid subject token"
        assert InvalidDestinationError("").details["reason"] == "no address"

    def test_malformed_payload(self) -> None:
        error = MalformedPayloadError("nats2ping.destination.x", "not an object")

        assert isinstance(error, DomainError)
        assert error.error_code == "MALFORMED_PAYLOAD"
        assert error.details == {"topic": "nats2ping.destination.x", "reason": "not an object"}

    def test_bus_connection_error(self) -> None:
        error = BusConnectionError("NATS", "nats://localhost:4222", "refused")

        assert isinstance(error, InfrastructureError)
        assert error.message == "Failed to connect to NATS at nats://localhost:4222: refused"
        assert error.error_code == "CONNECTION_ERROR"

    def test_configuration_error(self) -> None:
        error = ConfigurationError("config.yaml", "unable to open")

        assert isinstance(error, InfrastructureError)
        assert error.details["config_key"] == "config.yaml"
        assert str(error) == "Configuration error for 'config.yaml': unable to open"
