"""Domain enums for nats2ping."""

from __future__ import annotations

from enum import Enum


class ConnectionState(Enum):
    """Lifecycle states of the bus connection."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    SUBSCRIBING = "SUBSCRIBING"
    CONNECTED = "CONNECTED"
    DRAINING = "DRAINING"


class LivenessVerdict(Enum):
    """Outcome of comparing two probe statistics snapshots."""

    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    INCONCLUSIVE = "INCONCLUSIVE"
