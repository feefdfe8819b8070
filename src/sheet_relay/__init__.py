"""sheet-relay: configuration-driven row transfer and field mirroring
between workflow tables."""

__version__ = "0.4.0"
