"""Domain interfaces for nats2ping.

This module contains the abstract contracts for collaborators the
manager drives but does not implement itself.
"""

from __future__ import annotations

from .prober import Probe, Prober, ProbeStatistics

__all__ = ["Probe", "ProbeStatistics", "Prober"]
