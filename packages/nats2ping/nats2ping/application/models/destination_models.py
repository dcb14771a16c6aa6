"""Decoding of destination control payloads.

A payload on ``destination.<name>`` is either a JSON object carrying
``address`` and ``interval`` or, when it is not JSON at all, a bare
address string.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from nats2ping.domain.entities import DestinationSpec
from nats2ping.domain.exceptions import MalformedPayloadError


class DestinationPayload(BaseModel):
    """Structured destination payload.

    Keys are matched case-insensitively, so ``{"Address": ..., "Interval": ...}``
    and ``{"address": ..., "interval": ...}`` are equivalent.
    """

    model_config = ConfigDict(extra="ignore")

    address: str = Field(default="", description="Host name or IP address to probe")
    interval: int = Field(default=0, ge=0, description="Probe interval in seconds")

    @model_validator(mode="before")
    @classmethod
    def lower_keys(cls, data: Any) -> Any:
        """Normalize object keys to lower case."""
        if isinstance(data, dict):
            return {str(k).lower(): v for k, v in data.items()}
        return data


def parse_structured(topic: str, document: Any) -> DestinationPayload:
    """Validate an already JSON-decoded payload.

    Raises:
        MalformedPayloadError: If the document is not a valid destination object
    """
    if not isinstance(document, dict):
        raise MalformedPayloadError(topic, "json payload is not an object")
    try:
        return DestinationPayload.model_validate(document)
    except ValidationError as e:
        raise MalformedPayloadError(topic, str(e)) from e


def decode_destination_payload(topic: str, name: str, payload: str) -> DestinationSpec:
    """Turn a non-empty destination payload into a destination spec.

    Args:
        topic: Subject the payload arrived on, for error reporting
        name: Destination name taken from the subject
        payload: Raw payload

    Returns:
        The destination spec to admit

    Raises:
        MalformedPayloadError: If the payload is JSON but not a destination object
    """
    try:
        document = json.loads(payload)
    except json.JSONDecodeError:
        return DestinationSpec(name=name, address=payload.strip())

    parsed = parse_structured(topic, document)
    return DestinationSpec(name=name, address=parsed.address, interval=parsed.interval)
