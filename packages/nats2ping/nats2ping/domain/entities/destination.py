"""Destination domain entity and liveness evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..enums import LivenessVerdict

if TYPE_CHECKING:
    from ..interfaces.prober import Probe, ProbeStatistics

DEFAULT_OFFLINE_THRESHOLD = 3


@dataclass(frozen=True)
class DestinationSpec:
    """Definition of a destination before admission.

    Attributes:
        name: Unique name; the address is used when empty
        address: Host name or IP address to probe
        interval: Probe interval in seconds; 0 selects the process default
    """

    name: str = ""
    address: str = ""
    interval: int = 0


def classify(
    packets_sent: int,
    packets_received: int,
    last_packets_sent: int,
    last_packets_received: int,
) -> LivenessVerdict:
    """Compare cumulative counters against the previous snapshot.

    A received count that moved means the destination answered. When it did
    not move and at most one packet went out since the last snapshot, that
    packet may still be in flight, so nothing can be concluded yet.
    """
    if packets_received != last_packets_received:
        return LivenessVerdict.ONLINE
    if packets_sent - last_packets_sent <= 1:
        return LivenessVerdict.INCONCLUSIVE
    return LivenessVerdict.OFFLINE


@dataclass
class Destination:
    """An admitted destination and its liveness state.

    Attributes:
        name: Unique key in the destination table
        address: Host name or IP address being probed
        interval_seconds: Probe interval in seconds
        probe: Probe owned by this destination
        last_packets_sent: Sent counter at the last conclusive tick
        last_packets_received: Received counter at the last conclusive tick
        last_online: Liveness at the last conclusive tick
        consecutive_offline_ticks: Offline ticks since the last online tick
    """

    name: str
    address: str
    interval_seconds: int
    probe: Probe = field(repr=False)
    last_packets_sent: int = 0
    last_packets_received: int = 0
    last_online: bool = False
    consecutive_offline_ticks: int = 0

    def evaluate(
        self, stats: ProbeStatistics, offline_threshold: int = DEFAULT_OFFLINE_THRESHOLD
    ) -> tuple[LivenessVerdict, bool]:
        """Fold a statistics snapshot into the liveness state.

        Going online is reported on the first tick it is seen. Going offline
        is reported only on the tick where the offline streak reaches
        ``offline_threshold``; the streak keeps counting afterwards, so the
        report fires once per outage.

        Args:
            stats: Current cumulative probe statistics
            offline_threshold: Offline ticks needed before reporting an outage

        Returns:
            The verdict for this tick and whether a transition must be published
        """
        verdict = classify(
            stats.packets_sent,
            stats.packets_received,
            self.last_packets_sent,
            self.last_packets_received,
        )
        if verdict is LivenessVerdict.INCONCLUSIVE:
            return verdict, False

        online = verdict is LivenessVerdict.ONLINE
        changed = online != self.last_online
        self.last_packets_sent = stats.packets_sent
        self.last_packets_received = stats.packets_received
        self.last_online = online

        if online:
            self.consecutive_offline_ticks = 0
            return verdict, changed

        self.consecutive_offline_ticks += 1
        return verdict, self.consecutive_offline_ticks == offline_threshold
