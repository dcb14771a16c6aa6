"""Infrastructure layer for nats2ping."""
