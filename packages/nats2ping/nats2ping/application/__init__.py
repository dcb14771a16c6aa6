"""Application layer for nats2ping."""
