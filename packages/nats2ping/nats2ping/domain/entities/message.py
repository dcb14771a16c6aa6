"""Bus message entity."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BusMessage:
    """A message travelling between the manager and the bus.

    Attributes:
        topic: Full subject, prefix included
        payload: UTF-8 decoded payload, possibly empty
    """

    topic: str
    payload: str = ""
