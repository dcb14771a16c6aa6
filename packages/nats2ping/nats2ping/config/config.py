"""Configuration for nats2ping.

This module provides:
- Bus connection settings with environment variable overrides
- Supervisor and manager policy values with their defaults
- Loading of the static destinations document (YAML)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nats2ping.domain.exceptions import ConfigurationError
from nats2ping.infrastructure.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CLIENT_ID = "nats2ping_agent"
DEFAULT_BROKER_URL = "nats://demo.nats.io:4222"
DEFAULT_TOPIC_PREFIX = "nats2ping."


class BusSettings(BaseSettings):
    """Bus connection settings.

    Every value can be overridden from the environment: CLIENTID, BROKERURL,
    BUSUSER, BUSPASS and PREFIX.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    client_id: str = Field(
        default=DEFAULT_CLIENT_ID,
        validation_alias=AliasChoices("client_id", "CLIENTID"),
        description="Client name announced to the server; empty lets the server pick",
    )
    broker_url: str = Field(
        default=DEFAULT_BROKER_URL,
        validation_alias=AliasChoices("broker_url", "BROKERURL"),
        description="NATS server URL",
    )
    bus_user: str = Field(
        default="",
        validation_alias=AliasChoices("bus_user", "BUSUSER"),
        description="Username for the bus, if any",
    )
    bus_password: str = Field(
        default="",
        validation_alias=AliasChoices("bus_password", "BUSPASS"),
        description="Password for the bus, if any",
    )
    topic_prefix: str = Field(
        default=DEFAULT_TOPIC_PREFIX,
        validation_alias=AliasChoices("topic_prefix", "PREFIX"),
        description="Prefix prepended to every subject",
    )


class SupervisorTimeouts(BaseModel):
    """Bounded waits and fixed delays of the connection supervisor, in seconds."""

    connect_timeout: float = Field(default=30.0, gt=0, description="Connect call budget")
    connected_timeout: float = Field(
        default=10.0, gt=0, description="Wait for the connected notification"
    )
    subscribe_timeout: float = Field(default=20.0, gt=0, description="Budget per subscription")
    idle_timeout: float = Field(
        default=180.0, gt=0, description="Quiet period between health log lines"
    )
    quiesce: float = Field(default=0.5, ge=0, description="Drain budget when disconnecting")
    cooldown: float = Field(default=15.0, ge=0, description="Settle delay between cycles")
    publish_timeout: float = Field(default=10.0, gt=0, description="Budget per publish")
    pacing: float = Field(default=0.5, ge=0, description="Delay after every publish")


class ManagerSettings(BaseModel):
    """Process-wide defaults for the manager."""

    default_interval: int = Field(default=3, gt=0, description="Default probe interval")
    advertisements: int = Field(
        default=0, description="Seconds between full publishes; 0 or less disables them"
    )
    status_interval: int = Field(default=5, description="Seconds between liveness ticks")
    min_status_interval: int = Field(default=2, gt=0, description="Floor for status_interval")
    offline_threshold: int = Field(
        default=3, ge=1, description="Offline ticks needed before an outage is published"
    )

    @property
    def effective_status_interval(self) -> int:
        """Tick period actually used by the manager loop."""
        return max(self.min_status_interval, self.status_interval)


class DestinationEntry(BaseModel):
    """One destination in the static configuration document."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    name: str = ""
    address: str = ""
    interval: int = 0


class StaticConfig(BaseModel):
    """The static configuration document.

    Zero values mean "keep the built-in default", except for
    ``advertisements`` where zero disables periodic publishing.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    interval: int = 0
    advertisements: int = 0
    update_interval: int = Field(default=0, alias="update-interval")
    destinations: list[DestinationEntry] = Field(default_factory=list)

    @field_validator("destinations", mode="before")
    @classmethod
    def validate_destinations(cls, v: Any) -> Any:
        """Treat an empty ``destinations:`` key as an empty list."""
        return [] if v is None else v


def load_static_config(path: str | Path | None) -> StaticConfig:
    """Load the static configuration document.

    Args:
        path: YAML file to read; empty or None yields an empty document

    Returns:
        The parsed configuration

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    if not path:
        logger.warning("No config yaml file provided")
        return StaticConfig()

    config_path = Path(path)
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(str(config_path), f"unable to open: {e}") from e

    try:
        raw_data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigurationError(str(config_path), f"unable to parse yaml: {e}") from e

    if raw_data is None:
        return StaticConfig()
    if not isinstance(raw_data, dict):
        raise ConfigurationError(str(config_path), "top-level content must be a mapping")

    try:
        config = StaticConfig.model_validate(raw_data)
    except ValidationError as e:
        raise ConfigurationError(
            str(config_path), f"unable to assemble destinations: {e}"
        ) from e

    logger.info(
        "Loaded static configuration",
        extra={"path": str(config_path), "destinations": len(config.destinations)},
    )
    return config
