"""nats2ping: bridge NATS subjects and network reachability probes."""

__version__ = "0.1.0"
