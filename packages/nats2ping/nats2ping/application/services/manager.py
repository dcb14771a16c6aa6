"""Destination manager.

The manager is the only owner of the destination table. Every mutation,
whether it comes from the static configuration, a bus message or a timer,
runs on the manager's own task, so the table needs no lock.
"""

from __future__ import annotations

import asyncio
import json
import math
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from pydantic import ValidationError

from nats2ping.application.models import decode_destination_payload
from nats2ping.config import ManagerSettings, StaticConfig
from nats2ping.domain.entities import BusMessage, Destination, DestinationSpec
from nats2ping.domain.enums import LivenessVerdict
from nats2ping.domain.exceptions import (
    AdmissionError,
    ConfigurationError,
    DuplicateDestinationError,
    InvalidDestinationError,
    MalformedPayloadError,
)
from nats2ping.infrastructure.logging import get_logger
from nats2ping.infrastructure.messaging.topics import (
    WILDCARD,
    first_n,
    is_valid_name,
    online_str,
)

if TYPE_CHECKING:
    from nats2ping.domain.interfaces import Prober
    from nats2ping.infrastructure.messaging.topics import TopicScheme

logger = get_logger(__name__)

ALIVE_LOG_INTERVAL = 3600.0


class Manager:
    """Owns destinations, their liveness and the topic routing.

    Args:
        prober: Builds one probe per destination
        inbound: Messages received from the bus
        outbound: Messages to publish on the bus
        topics: Subject layout
        settings: Process-wide defaults
    """

    def __init__(
        self,
        prober: Prober,
        inbound: asyncio.Queue[BusMessage],
        outbound: asyncio.Queue[BusMessage],
        topics: TopicScheme,
        settings: ManagerSettings | None = None,
    ) -> None:
        self._prober = prober
        self._inbound = inbound
        self._outbound = outbound
        self._topics = topics
        self._settings = settings or ManagerSettings()
        self._destinations: dict[str, Destination] = {}
        self._published_attributes: tuple[str, ...] | None = None
        self._shutdown = asyncio.Event()
        self._main_task: asyncio.Task[None] | None = None
        self.stopped = asyncio.Event()

    @property
    def settings(self) -> ManagerSettings:
        return self._settings

    @property
    def destinations(self) -> Mapping[str, Destination]:
        """Read-only view of the destination table."""
        return MappingProxyType(self._destinations)

    @property
    def published_attributes(self) -> tuple[str, ...] | None:
        """Telemetry key order, fixed by the first telemetry publish."""
        return self._published_attributes

    async def load(self, config: StaticConfig) -> None:
        """Apply the static configuration and admit its destinations.

        Raises:
            ConfigurationError: If the document carries invalid periods
        """
        updates: dict[str, int] = {}
        if config.interval:
            updates["default_interval"] = config.interval
        if config.advertisements:
            updates["advertisements"] = config.advertisements
        if config.update_interval:
            updates["status_interval"] = config.update_interval
        try:
            self._settings = ManagerSettings.model_validate(
                {**self._settings.model_dump(), **updates}
            )
        except ValidationError as e:
            raise ConfigurationError("static config", str(e)) from e

        for entry in config.destinations:
            await self.add_destination(
                DestinationSpec(name=entry.name, address=entry.address, interval=entry.interval)
            )

        if not self._destinations:
            logger.warning("No valid destinations from yaml data: use the destination subject")

    async def add_destination(self, spec: DestinationSpec) -> bool:
        """Admit a destination and start probing it.

        Rejected definitions are logged and leave the table untouched.

        Returns:
            True if the destination was added
        """
        try:
            destination = await self._admit(spec)
        except AdmissionError as e:
            logger.warning("Ignoring destination: %s", e.message, extra={"details": e.details})
            return False

        destination.probe.start()
        self._destinations[destination.name] = destination
        logger.info(
            "Added destination %s (%s)",
            destination.name,
            destination.probe.ip_address,
            extra={"address": destination.address, "interval": destination.interval_seconds},
        )
        return True

    async def _admit(self, spec: DestinationSpec) -> Destination:
        if not spec.address:
            raise InvalidDestinationError(spec.name)

        name = spec.name or spec.address
        if not is_valid_name(name):
            raise InvalidDestinationError(name, "name is not a valid subject token")
        if name in self._destinations:
            raise DuplicateDestinationError(name)

        interval = spec.interval if spec.interval > 0 else self._settings.default_interval
        probe = await self._prober.create(name, spec.address, interval)
        return Destination(name=name, address=spec.address, interval_seconds=interval, probe=probe)

    def remove_destination(self, name: str, log_not_found: bool = True) -> bool:
        """Stop probing a destination and drop it from the table.

        Returns:
            True if the destination existed
        """
        destination = self._destinations.pop(name, None)
        if destination is None:
            if log_not_found:
                logger.warning("Ignoring removal of destination %s: not-found", name)
            return False

        destination.probe.stop()
        logger.info("Removed destination %s (%s)", name, destination.address)
        return True

    async def replace_destination(self, spec: DestinationSpec) -> bool:
        """Remove the destination with the same name, if any, then add ``spec``."""
        self.remove_destination(spec.name or spec.address, log_not_found=False)
        return await self.add_destination(spec)

    async def handle_status_tick(self) -> None:
        """Evaluate every destination and publish liveness transitions."""
        for destination in self._destinations.values():
            stats = destination.probe.statistics()
            verdict, publish = destination.evaluate(stats, self._settings.offline_threshold)
            if verdict is LivenessVerdict.INCONCLUSIVE:
                continue

            logger.debug(
                "%s probe %s sent: %d received: %d (%.0f%% loss) online: %s consecutive offline: %d",
                destination.name,
                destination.probe.ip_address,
                destination.last_packets_sent,
                destination.last_packets_received,
                stats.packet_loss,
                destination.last_online,
                destination.consecutive_offline_ticks,
            )
            if publish:
                logger.info("%s is now %s", destination.name, online_str(destination.last_online))
                await self.publish_destination(destination)

    async def handle_message(self, msg: BusMessage) -> None:
        """Dispatch one inbound bus message by topic."""
        name = self._topics.parse_status(msg.topic)
        if name is not None:
            await self._handle_status(name, msg.payload)
            return

        name = self._topics.parse_destination(msg.topic)
        if name is not None:
            await self._handle_destination(msg.topic, name, msg.payload)
            return

        logger.info("Unhandled: topic %s payload %r...", msg.topic, first_n(msg.payload, 10))

    async def _handle_status(self, name: str, payload: str) -> None:
        if payload:
            logger.warning("Ignoring unused payload: %s", payload)
        if not name:
            await self.publish_all()
            return

        destination = self._destinations.get(name)
        if destination is None:
            logger.warning("No status for destination %s: not-found", name)
            return
        await self.publish_destination(destination)

    async def _handle_destination(self, topic: str, name: str, payload: str) -> None:
        if not payload:
            self.remove_destination(name)
            return

        try:
            spec = decode_destination_payload(topic, name, payload)
        except MalformedPayloadError as e:
            logger.error("Dropping destination update: %s", e.message)
            return
        await self.replace_destination(spec)

    def telemetry(self, destination: Destination) -> str:
        """Render the telemetry JSON object of a destination."""
        stats = destination.probe.statistics()
        values = {
            "name": destination.name,
            "address": destination.address,
            "ip": destination.probe.ip_address,
            "packets_sent": str(destination.last_packets_sent),
            "packets_received": str(destination.last_packets_received),
            "interval_in_seconds": str(destination.interval_seconds),
            "is_online": "true" if destination.last_online else "false",
            "consecutive_offline": str(destination.consecutive_offline_ticks),
            "rtt_in_milliseconds": str(int(stats.avg_rtt * 1000)),
            "packets_loss_percent": f"{stats.packet_loss:.0f}%",
        }

        if self._published_attributes is None:
            self._published_attributes = tuple(sorted(values))
            logger.info("Assembled publish info keys cache: %s", list(self._published_attributes))

        ordered = {key: values[key] for key in self._published_attributes}
        return json.dumps(ordered, separators=(",", ":"))

    async def publish_destination(self, destination: Destination) -> None:
        """Queue the state and info messages of a destination."""
        topic, state = self._topics.advertise_state(destination.name, destination.last_online)
        await self._outbound.put(BusMessage(topic=topic, payload=state))

        topic, info = self._topics.advertise_info(destination.name, self.telemetry(destination))
        await self._outbound.put(BusMessage(topic=topic, payload=info))

        logger.info(
            "Published destination %s (%s): %s",
            destination.name,
            destination.probe.ip_address,
            state,
        )

    async def publish_all(self) -> None:
        logger.info("Publishing %d destinations", len(self._destinations))
        for destination in self._destinations.values():
            await self.publish_destination(destination)

    async def start(self) -> None:
        """Start the main loop task."""
        if self._main_task is not None:
            logger.warning("Manager already running")
            return
        self._main_task = asyncio.create_task(self._main_loop(), name="nats2ping-manager")

    def request_shutdown(self) -> None:
        """Ask the main loop to stop; safe to call from a signal handler."""
        self._shutdown.set()

    async def stop(self) -> None:
        """Request shutdown and wait for the main loop to finish."""
        self.request_shutdown()
        if self._main_task is not None:
            await self._main_task

    async def _main_loop(self) -> None:
        loop = asyncio.get_running_loop()
        status_interval = self._settings.effective_status_interval
        advertise_period = self._settings.advertisements

        now = loop.time()
        next_status = now + status_interval
        next_alive = now + ALIVE_LOG_INTERVAL
        if advertise_period > 0:
            next_advertise = now + advertise_period
            logger.info("Advertisements will be sent every: %d seconds", advertise_period)
        else:
            next_advertise = math.inf
        logger.info("Checking for probe updates every: %d seconds", status_interval)

        topic, _ = self._topics.advertise_state(WILDCARD, True)
        logger.info("For destination status, subscribe to subject: %s", topic)
        topic, _ = self._topics.advertise_info(WILDCARD, "")
        logger.info("For destination details, subscribe to subject: %s", topic)

        shutdown = asyncio.ensure_future(self._shutdown.wait())
        receive: asyncio.Future[BusMessage] | None = None
        try:
            while True:
                if receive is None:
                    receive = asyncio.ensure_future(self._inbound.get())
                timeout = max(0.0, min(next_status, next_advertise, next_alive) - loop.time())
                done, _ = await asyncio.wait(
                    {receive, shutdown}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
                )
                if shutdown in done:
                    break

                try:
                    if receive in done:
                        msg = receive.result()
                        receive = None
                        await self.handle_message(msg)

                    now = loop.time()
                    if now >= next_advertise:
                        next_advertise = now + advertise_period
                        await self.publish_all()
                    if now >= next_status:
                        next_status = now + status_interval
                        await self.handle_status_tick()
                    if now >= next_alive:
                        next_alive = now + ALIVE_LOG_INTERVAL
                        logger.info(
                            "Manager loop alive", extra={"destinations": len(self._destinations)}
                        )
                except Exception as e:
                    logger.error("Error in manager loop", exc_info=e)
        finally:
            shutdown.cancel()
            if receive is not None:
                receive.cancel()
            for name in list(self._destinations):
                logger.debug("Stopping probe %s", name)
                self.remove_destination(name)
            logger.info("Manager main loop is finished")
            self.stopped.set()
