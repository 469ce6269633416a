"""Operator console for Kafka topics: message explorer, publisher and API server."""

__version__ = "1.0.0"
