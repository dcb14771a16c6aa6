"""Shared fixtures for nats2ping tests."""

from __future__ import annotations

import pytest
from fakes import FakeProber
from nats2ping.infrastructure.messaging.topics import TopicScheme


@pytest.fixture
def topics() -> TopicScheme:
    return TopicScheme("nats2ping.")


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber(unresolvable={"no.such.host"})
