"""Domain entities for nats2ping."""

from __future__ import annotations

from .destination import Destination, DestinationSpec, classify
from .message import BusMessage

__all__ = ["BusMessage", "Destination", "DestinationSpec", "classify"]
