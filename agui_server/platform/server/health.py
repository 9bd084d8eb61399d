"""
HTTP health check state and service metadata.
"""

import datetime
import os
import platform
import socket
import threading
import time

from agui_server.platform.constants import SERVICE_NAME, SERVICE_VERSION

__all__ = ["HealthCheck", "MetadataManager", "metadata"]


class HealthCheck:
    """Thread-safe health check state manager.

    Uses a threading.Event so the service can be marked unhealthy while it
    drains during shutdown.
    """

    _health_check_enabled = threading.Event()

    @staticmethod
    def enable() -> None:
        HealthCheck._health_check_enabled.set()

    @staticmethod
    def disable() -> None:
        HealthCheck._health_check_enabled.clear()

    @staticmethod
    def status() -> bool:
        return HealthCheck._health_check_enabled.is_set()


class MetadataManager:
    """Static container metadata plus uptime, served by ``/info``.

    Values are read from the environment once, at construction.
    """

    ENV_INFO_KEYS = [
        "BUILD_DATE",
        "BUILD_VERSION",
        "GIT_COMMIT",
        "IMAGE_NAME",
        "SERVICE_ID",
    ]
    HOSTNAME_KEY = "HOSTNAME"
    OS_VERSION_KEY = "OS_VERSION"
    PYTHON_VERSION_KEY = "PYTHON_VERSION"
    SERVICE_NAME_KEY = "SERVICE_NAME"

    def __init__(self):
        self._started_at = datetime.datetime.now(tz=datetime.UTC).isoformat()
        self._started_ts = time.monotonic()

        metadata = {key: os.environ.get(key) for key in self.ENV_INFO_KEYS}
        metadata[self.HOSTNAME_KEY] = socket.gethostname()
        metadata[self.OS_VERSION_KEY] = platform.platform()
        metadata[self.PYTHON_VERSION_KEY] = platform.python_version()
        metadata[self.SERVICE_NAME_KEY] = os.environ.get(self.SERVICE_NAME_KEY, SERVICE_NAME)
        metadata["BUILD_VERSION"] = metadata["BUILD_VERSION"] or SERVICE_VERSION
        self.metadata = {key.lower(): value for key, value in metadata.items()}

    def info(self):
        """
        Return metadata about the container and some basic stats
        """
        return {
            **self.metadata,
            "started": self._started_at,
            "uptime_seconds": round(time.monotonic() - self._started_ts, 3),
        }


metadata = MetadataManager()
