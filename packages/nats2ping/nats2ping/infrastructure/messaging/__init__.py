"""Messaging infrastructure for nats2ping."""

from __future__ import annotations

from .nats_client import NATSClient
from .supervisor import ConnectionSupervisor
from .topics import TopicScheme

__all__ = ["ConnectionSupervisor", "NATSClient", "TopicScheme"]
