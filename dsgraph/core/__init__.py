# Core: configuration and logging
from dsgraph.core.config import ConnectorOptions, Settings, get_settings

__all__ = ["ConnectorOptions", "Settings", "get_settings"]
