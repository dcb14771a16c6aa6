"""Probe implementations for nats2ping."""

from __future__ import annotations

from .ping_prober import PingProbe, PingProber

__all__ = ["PingProbe", "PingProber"]
