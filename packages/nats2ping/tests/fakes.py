"""Fakes shared by nats2ping tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from nats2ping.config import BusSettings
from nats2ping.domain.entities import BusMessage
from nats2ping.domain.exceptions import BusConnectionError, ProbeError
from nats2ping.domain.interfaces import Probe, Prober, ProbeStatistics


class FakeProbe(Probe):
    """Probe whose statistics are set by the test."""

    def __init__(self, name: str, address: str, interval_seconds: int) -> None:
        self.name = name
        self.address = address
        self.interval_seconds = interval_seconds
        self.stats = ProbeStatistics()
        self.started = False
        self.stopped = False

    @property
    def ip_address(self) -> str:
        return f"ip-of-{self.address}"

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def statistics(self) -> ProbeStatistics:
        return self.stats

    def set_counters(self, sent: int, received: int, avg_rtt: float = 0.0) -> None:
        loss = (sent - received) * 100.0 / sent if sent else 0.0
        self.stats = ProbeStatistics(
            packets_sent=sent, packets_received=received, avg_rtt=avg_rtt, packet_loss=loss
        )


class FakeProber(Prober):
    """Prober that records every probe it creates."""

    def __init__(self, unresolvable: set[str] | None = None) -> None:
        self.unresolvable = unresolvable or set()
        self.created: list[FakeProbe] = []

    async def create(self, name: str, address: str, interval_seconds: int) -> FakeProbe:
        if address in self.unresolvable:
            raise ProbeError(name, address, "unknown host")
        probe = FakeProbe(name, address, interval_seconds)
        self.created.append(probe)
        return probe


def drain(queue: asyncio.Queue[BusMessage]) -> list[BusMessage]:
    """Pop everything currently in a queue."""
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


class FakeBusClient:
    """Bus client driven by the test instead of a server."""

    def __init__(
        self,
        settings: BusSettings,
        connectivity: asyncio.Queue[bool],
        received: asyncio.Queue[BusMessage],
        fail_connect: bool = False,
        hang_connect: bool = False,
        announce: bool = True,
        fail_subscribe: bool = False,
        hang_publish: set[str] | None = None,
        after_connect: Callable[[], None] | None = None,
    ) -> None:
        self.settings = settings
        self.connectivity = connectivity
        self.received = received
        self.fail_connect = fail_connect
        self.hang_connect = hang_connect
        self.announce = announce
        self.fail_subscribe = fail_subscribe
        self.hang_publish = hang_publish or set()
        self.after_connect = after_connect
        self.subscribed: list[str] = []
        self.published: list[BusMessage] = []
        self.disconnected = False

    async def connect(self) -> None:
        if self.hang_connect:
            await asyncio.Event().wait()
        if self.fail_connect:
            raise BusConnectionError("NATS", self.settings.broker_url, "refused")
        if self.announce:
            await self.connectivity.put(True)
        if self.after_connect is not None:
            asyncio.get_running_loop().call_soon(self.after_connect)

    async def disconnect(self, quiesce: float) -> None:
        self.disconnected = True

    async def publish(self, subject: str, payload: str) -> None:
        if subject in self.hang_publish:
            await asyncio.Event().wait()
        self.published.append(BusMessage(subject, payload))

    async def subscribe(self, subject: str) -> None:
        if self.fail_subscribe:
            raise BusConnectionError("NATS", self.settings.broker_url, "not allowed")
        self.subscribed.append(subject)

    def deliver(self, topic: str, payload: str = "") -> None:
        self.received.put_nowait(BusMessage(topic, payload))

    def lose_connection(self) -> None:
        self.connectivity.put_nowait(False)


class FakeClientFactory:
    """Builds one ``FakeBusClient`` per connection cycle.

    Each entry of ``behaviors`` configures one cycle in order; later cycles
    get a well-behaved client.
    """

    def __init__(self, behaviors: list[dict[str, Any]] | None = None) -> None:
        self.behaviors = list(behaviors or [])
        self.clients: list[FakeBusClient] = []

    def __call__(
        self,
        settings: BusSettings,
        connectivity: asyncio.Queue[bool],
        received: asyncio.Queue[BusMessage],
    ) -> FakeBusClient:
        behavior = self.behaviors.pop(0) if self.behaviors else {}
        client = FakeBusClient(settings, connectivity, received, **behavior)
        self.clients.append(client)
        return client


async def wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``condition`` until it holds or ``timeout`` expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)
