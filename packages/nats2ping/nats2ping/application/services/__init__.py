"""Application services for nats2ping."""

from __future__ import annotations

from .manager import Manager

__all__ = ["Manager"]
