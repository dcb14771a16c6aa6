"""Entry point for ``python -m nats2ping``."""

from nats2ping.cli import app

app(prog_name="nats2ping")
