"""Domain layer for nats2ping."""
