"""Connection supervisor for the message bus.

The supervisor keeps exactly one subscribed bus connection alive. Each
connection attempt is one cycle of a state machine::

    DISCONNECTED -> CONNECTING -> SUBSCRIBING -> CONNECTED
          ^                                          |
          +-------------- DRAINING <-----------------+

Any expired wait or bus error ends the cycle: the client is drained, the
state returns to DISCONNECTED and a new cycle starts after a fixed
cooldown. There is no retry counter.

A separate message pump forwards received messages to the manager's
inbound queue and publishes the manager's outbound messages, one at a time
and in order.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from typing import Protocol

from nats2ping.config import BusSettings, SupervisorTimeouts
from nats2ping.domain.entities import BusMessage
from nats2ping.domain.enums import ConnectionState
from nats2ping.domain.exceptions import BusConnectionError
from nats2ping.infrastructure.logging import get_logger

from .nats_client import NATSClient
from .topics import TopicScheme, first_n

logger = get_logger(__name__)

OUTBOUND_CAPACITY = 512
RECEIVED_CAPACITY = 1024
CONNECTIVITY_CAPACITY = 16


class BusClient(Protocol):
    """What the supervisor needs from a bus client."""

    async def connect(self) -> None: ...

    async def disconnect(self, quiesce: float) -> None: ...

    async def publish(self, subject: str, payload: str) -> None: ...

    async def subscribe(self, subject: str) -> None: ...


ClientFactory = Callable[[BusSettings, asyncio.Queue[bool], asyncio.Queue[BusMessage]], BusClient]


class ConnectionSupervisor:
    """Owns the bus connection lifecycle and the message pump.

    Args:
        settings: Bus connection settings
        inbound: Manager queue receiving every bus message
        topics: Subject layout; built from ``settings.topic_prefix`` if omitted
        timeouts: Bounded waits and delays; defaults if omitted
        client_factory: Builds a fresh client for every cycle
    """

    def __init__(
        self,
        settings: BusSettings,
        inbound: asyncio.Queue[BusMessage],
        topics: TopicScheme | None = None,
        timeouts: SupervisorTimeouts | None = None,
        client_factory: ClientFactory = NATSClient,
    ) -> None:
        self._settings = settings
        self._inbound = inbound
        self._topics = topics or TopicScheme(settings.topic_prefix)
        self._timeouts = timeouts or SupervisorTimeouts()
        self._client_factory = client_factory

        self._outbound: asyncio.Queue[BusMessage] = asyncio.Queue(maxsize=OUTBOUND_CAPACITY)
        self._received: asyncio.Queue[BusMessage] = asyncio.Queue(maxsize=RECEIVED_CAPACITY)
        self._connectivity: asyncio.Queue[bool] = asyncio.Queue(maxsize=CONNECTIVITY_CAPACITY)

        self._client: BusClient | None = None
        self._state = ConnectionState.DISCONNECTED
        self._running = False
        self._settle_until = 0.0
        self._connection_task: asyncio.Task[None] | None = None
        self._pump_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def outbound(self) -> asyncio.Queue[BusMessage]:
        """Queue the manager hands its publishes to."""
        return self._outbound

    async def start(self) -> None:
        """Start the connection state machine and the message pump."""
        if self._running:
            logger.warning("ConnectionSupervisor already running")
            return

        self._running = True
        self._connection_task = asyncio.create_task(
            self._connection_loop(), name="nats2ping-connection"
        )
        self._pump_task = asyncio.create_task(self._pump(), name="nats2ping-pump")
        logger.info("ConnectionSupervisor started", extra={"subjects": self._topics.subscriptions()})

    async def stop(self) -> None:
        """Stop both tasks, draining the current connection."""
        self._running = False

        for task in (self._connection_task, self._pump_task):
            if task and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._connection_task = None
        self._pump_task = None

        self._settle_until = asyncio.get_running_loop().time() + self._timeouts.cooldown
        logger.info("ConnectionSupervisor stopped")

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug(
                "Connection state change",
                extra={"from_state": self._state.value, "to_state": state.value},
            )
            self._state = state

    async def _connection_loop(self) -> None:
        """Run connection cycles until stopped."""
        settle = self._settle_until - asyncio.get_running_loop().time()
        if settle > 0:
            logger.info("Waiting for previous connection to settle", extra={"seconds": settle})
            await asyncio.sleep(settle)

        while self._running:
            try:
                await self._run_cycle()
            except Exception as e:
                logger.error("Unexpected error in connection cycle", exc_info=e)
            finally:
                await self._teardown()

            logger.info(
                "Bus connection cycle ended", extra={"cooldown": self._timeouts.cooldown}
            )
            await asyncio.sleep(self._timeouts.cooldown)

    async def _run_cycle(self) -> None:
        """One connect, subscribe and watch cycle. Returns when it is over."""
        while not self._connectivity.empty():
            self._connectivity.get_nowait()

        self._set_state(ConnectionState.CONNECTING)
        client = self._client_factory(self._settings, self._connectivity, self._received)
        self._client = client

        logger.info("Connecting to bus", extra={"broker_url": self._settings.broker_url})
        try:
            async with asyncio.timeout(self._timeouts.connect_timeout):
                await client.connect()
        except TimeoutError:
            logger.warning(
                "Unable to connect: timed out",
                extra={"timeout": self._timeouts.connect_timeout},
            )
            return
        except BusConnectionError as e:
            logger.warning("Unable to connect: %s", e.message)
            return

        if not await self._wait_connected():
            logger.warning(
                "Connect notification timed out",
                extra={"timeout": self._timeouts.connected_timeout},
            )
            return
        logger.debug("Connected and got connect notification")

        self._set_state(ConnectionState.SUBSCRIBING)
        for subject in self._topics.subscriptions():
            try:
                async with asyncio.timeout(self._timeouts.subscribe_timeout):
                    await client.subscribe(subject)
            except TimeoutError:
                logger.warning("Unable to subscribe to %s: timed out", subject)
                return
            except BusConnectionError as e:
                logger.warning("Unable to subscribe to %s: %s", subject, e.message)
                return

        self._set_state(ConnectionState.CONNECTED)
        logger.info("Bus connection ready")
        await self._watch_connection()

    async def _wait_connected(self) -> bool:
        """Wait for a ``True`` connectivity notification within the budget."""
        try:
            async with asyncio.timeout(self._timeouts.connected_timeout):
                while not await self._connectivity.get():
                    pass
        except TimeoutError:
            return False
        return True

    async def _watch_connection(self) -> None:
        """Stay CONNECTED until the client reports the connection lost."""
        while True:
            try:
                async with asyncio.timeout(self._timeouts.idle_timeout):
                    connected = await self._connectivity.get()
            except TimeoutError:
                logger.debug("Bus connection idle", extra={"state": self._state.value})
                continue

            logger.info("Got connectivity notification", extra={"connected": connected})
            if not connected:
                return

    async def _teardown(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            self._set_state(ConnectionState.DRAINING)
            await client.disconnect(self._timeouts.quiesce)
        self._set_state(ConnectionState.DISCONNECTED)

    async def _pump(self) -> None:
        """Move messages between the bus and the manager, preserving order."""
        receive = asyncio.ensure_future(self._received.get())
        send = asyncio.ensure_future(self._outbound.get())
        try:
            while True:
                done, _ = await asyncio.wait(
                    {receive, send}, return_when=asyncio.FIRST_COMPLETED
                )
                if receive in done:
                    msg = receive.result()
                    logger.debug(
                        "Received %s %r...", msg.topic, first_n(msg.payload, 10)
                    )
                    await self._inbound.put(msg)
                    receive = asyncio.ensure_future(self._received.get())
                if send in done:
                    await self._publish(send.result())
                    send = asyncio.ensure_future(self._outbound.get())
        finally:
            receive.cancel()
            send.cancel()

    async def _publish(self, msg: BusMessage) -> None:
        """Publish one message; failures are logged and the message dropped."""
        client = self._client
        if client is None or self._state is not ConnectionState.CONNECTED:
            logger.warning("Dropping publish while not connected", extra={"topic": msg.topic})
            return

        try:
            async with asyncio.timeout(self._timeouts.publish_timeout):
                await client.publish(msg.topic, msg.payload)
        except TimeoutError:
            logger.error(
                "Timed out sending %s",
                msg.topic,
                extra={"timeout": self._timeouts.publish_timeout},
            )
            return
        except BusConnectionError as e:
            logger.error("Failed sending %s: %s", msg.topic, e.message)
            return

        logger.debug("Sent %s %r", msg.topic, msg.payload)
        await asyncio.sleep(self._timeouts.pacing)
