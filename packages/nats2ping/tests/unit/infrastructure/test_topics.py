"""Unit tests for the subject layout helpers."""

from __future__ import annotations

import pytest
from nats2ping.infrastructure.messaging.topics import WILDCARD, TopicScheme, first_n, is_valid_name


def test_first_n() -> None:
    assert first_n("hello", 10) == "hello"
    assert first_n("0123456789abcdef", 8) == "01234567"


@pytest.mark.parametrize(
    "name",
    ["router", "10.0.0.1", "lab.router", "2001:db8::1", "living-room_tv"],
)
def test_valid_names(name: str) -> None:
    assert is_valid_name(name)


@pytest.mark.parametrize(
    "name",
    ["", "Living Room TV", "tab\there", "a..b", ".router", "router.", "*", "lab.>", "ro*ter"],
)
def test_invalid_names(name: str) -> None:
    """Test names that cannot form a subject token are refused."""
    assert not is_valid_name(name)


class TestTopicScheme:
    """Test subject builders and parsers."""

    def test_subscription_subjects(self, topics: TopicScheme) -> None:
        assert topics.status_subject() == "nats2ping.status"
        assert topics.destination_status_subject() == "nats2ping.status.>"
        assert topics.destination_config_subject() == "nats2ping.destination.>"
        assert topics.subscriptions() == [
            "nats2ping.status",
            "nats2ping.status.>",
            "nats2ping.destination.>",
        ]

    def test_parse_status(self, topics: TopicScheme) -> None:
        assert topics.parse_status("nats2ping.status.router") == "router"
        assert topics.parse_status("nats2ping.status") == ""
        assert topics.parse_status("nats2ping.state.router") is None
        assert topics.parse_status("other.status.router") is None

    def test_parse_destination(self, topics: TopicScheme) -> None:
        assert topics.parse_destination("nats2ping.destination.router") == "router"
        assert topics.parse_destination("nats2ping.destination") is None
        assert topics.parse_destination("nats2ping.status.router") is None

    def test_names_may_contain_separators(self, topics: TopicScheme) -> None:
        assert topics.parse_destination("nats2ping.destination.site.router") == "site.router"

    def test_advertise_state(self, topics: TopicScheme) -> None:
        assert topics.advertise_state("sensor1", True) == ("nats2ping.state.sensor1", "online")
        assert topics.advertise_state("sensor1", False) == ("nats2ping.state.sensor1", "offline")

    def test_advertise_info(self, topics: TopicScheme) -> None:
        assert topics.advertise_info("sensor1", "pong") == ("nats2ping.info.sensor1", "pong")

    def test_state_topic_parses_back_to_name(self, topics: TopicScheme) -> None:
        topic, _ = topics.advertise_state("router", True)
        assert topics.parse_state(topic) == "router"

        topic, _ = topics.advertise_info("router", "{}")
        assert topics.parse_info(topic) == "router"

    def test_wildcard_state_topic_is_subscription_pattern(self, topics: TopicScheme) -> None:
        topic, _ = topics.advertise_state(WILDCARD, True)
        assert topic == "nats2ping.state.>"
        assert topic.replace("state", "status") == topics.destination_status_subject()

    def test_custom_prefix(self) -> None:
        scheme = TopicScheme("lab.pings.")
        assert scheme.status_subject() == "lab.pings.status"
        assert scheme.parse_status("lab.pings.status.gw") == "gw"
        assert scheme.parse_status("nats2ping.status.gw") is None
