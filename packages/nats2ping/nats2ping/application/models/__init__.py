"""Application models for nats2ping."""

from __future__ import annotations

from .destination_models import DestinationPayload, decode_destination_payload

__all__ = ["DestinationPayload", "decode_destination_payload"]
