"""Configuration, deduplication, record keys and metrics helpers for Geyser gRPC relays."""

__version__ = "0.1.0"