"""Abstract interface for liveness probes.

A prober builds one probe per destination. Each probe runs in the
background on its own task and exposes cumulative statistics that the
manager polls on its status tick.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProbeStatistics:
    """Cumulative snapshot of a probe's activity.

    Attributes:
        packets_sent: Echo requests sent so far
        packets_received: Echo replies received so far
        avg_rtt: Average round-trip time in seconds
        packet_loss: Lost packets as a percentage of sent packets
    """

    packets_sent: int = 0
    packets_received: int = 0
    avg_rtt: float = 0.0
    packet_loss: float = 0.0


class Probe(ABC):
    """A running liveness probe for a single address."""

    @property
    @abstractmethod
    def ip_address(self) -> str:
        """Resolved IP address being probed."""
        ...

    @abstractmethod
    def start(self) -> None:
        """Start probing in the background."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop probing. Calling it more than once is harmless."""
        ...

    @abstractmethod
    def statistics(self) -> ProbeStatistics:
        """Return the current statistics snapshot."""
        ...


class Prober(ABC):
    """Factory for probes."""

    @abstractmethod
    async def create(self, name: str, address: str, interval_seconds: int) -> Probe:
        """Create a probe for an address without starting it.

        Args:
            name: Destination name, used in errors and logs
            address: Host name or IP address
            interval_seconds: Seconds between probes

        Returns:
            A probe ready to be started

        Raises:
            ProbeError: If the address cannot be resolved or probed
        """
        ...
