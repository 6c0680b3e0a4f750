# Shared: errors and events
from dsgraph.shared.error_framework import (
    ConnectorError,
    ConfigError,
    InvalidKeyError,
    UnsupportedKeyError,
    MalformedValueError,
    ConnectivityError,
)
from dsgraph.shared.events import EventPublisher

__all__ = [
    "ConnectorError",
    "ConfigError",
    "InvalidKeyError",
    "UnsupportedKeyError",
    "MalformedValueError",
    "ConnectivityError",
    "EventPublisher",
]
