"""Subject layout for nats2ping.

All subjects live under a configurable prefix such as ``nats2ping.``:

- ``<prefix>status`` and ``<prefix>status.<name>``: status queries
- ``<prefix>destination.<name>``: add, replace or remove a destination
- ``<prefix>state.<name>``: published liveness (``online``/``offline``)
- ``<prefix>info.<name>``: published telemetry (JSON object)
"""

from __future__ import annotations

WILDCARD = ">"
TOKEN_WILDCARD = "*"
SEPARATOR = "."

STATUS = "status"
DESTINATION = "destination"
STATE = "state"
INFO = "info"

ONLINE = "online"
OFFLINE = "offline"


def first_n(text: str, n: int) -> str:
    """Return at most the first ``n`` characters of ``text``."""
    return text[:n]


def online_str(is_online: bool) -> str:
    return ONLINE if is_online else OFFLINE


def is_valid_name(name: str) -> bool:
    """Check that a destination name can end a subject.

    Every dot separated token must be non-empty and free of whitespace and
    wildcards.
    """
    if not name:
        return False
    for token in name.split(SEPARATOR):
        if not token or any(c.isspace() or c in (WILDCARD, TOKEN_WILDCARD) for c in token):
            return False
    return True


class TopicScheme:
    """Builds and parses the subjects used under one prefix."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def _subject(self, kind: str, name: str | None = None) -> str:
        if name is None:
            return f"{self.prefix}{kind}"
        return f"{self.prefix}{kind}{SEPARATOR}{name}"

    def status_subject(self) -> str:
        return self._subject(STATUS)

    def destination_status_subject(self) -> str:
        return self._subject(STATUS, WILDCARD)

    def destination_config_subject(self) -> str:
        return self._subject(DESTINATION, WILDCARD)

    def subscriptions(self) -> list[str]:
        """Subjects the supervisor subscribes to on every connection."""
        return [
            self.status_subject(),
            self.destination_status_subject(),
            self.destination_config_subject(),
        ]

    def _extract_suffix(self, topic: str, kind: str) -> str | None:
        marker = self._subject(kind) + SEPARATOR
        if not topic.startswith(marker):
            return None
        name = topic[len(marker) :]
        return name or None

    def parse_status(self, topic: str) -> str | None:
        """Extract the destination name of a status query.

        Returns:
            ``""`` for the query on all destinations, the name for a single
            destination, or None when the topic is not a status query
        """
        if topic == self.status_subject():
            return ""
        return self._extract_suffix(topic, STATUS)

    def parse_destination(self, topic: str) -> str | None:
        """Extract the destination name of a destination control topic."""
        return self._extract_suffix(topic, DESTINATION)

    def parse_state(self, topic: str) -> str | None:
        return self._extract_suffix(topic, STATE)

    def parse_info(self, topic: str) -> str | None:
        return self._extract_suffix(topic, INFO)

    def advertise_state(self, name: str, is_online: bool) -> tuple[str, str]:
        """Topic and payload announcing a destination's liveness.

        Passing ``WILDCARD`` as the name yields the subject to subscribe to
        for every destination.
        """
        return self._subject(STATE, name), online_str(is_online)

    def advertise_info(self, name: str, info: str) -> tuple[str, str]:
        """Topic and payload carrying a destination's telemetry."""
        return self._subject(INFO, name), info
