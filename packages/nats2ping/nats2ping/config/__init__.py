"""Configuration package for nats2ping."""

from .config import (
    BusSettings,
    DestinationEntry,
    ManagerSettings,
    StaticConfig,
    SupervisorTimeouts,
    load_static_config,
)

__all__ = [
    "BusSettings",
    "DestinationEntry",
    "ManagerSettings",
    "StaticConfig",
    "SupervisorTimeouts",
    "load_static_config",
]
