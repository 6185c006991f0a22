"""
Network connectivity signal.

The coordinator reads ``is_online()``. The flag is either set by the host
(``set_online``) or refreshed by pinging a health URL (``check``). With a
health URL configured, ``refresh`` re-pings at most once per
``check_interval`` seconds and ``mark_unreachable`` flips the flag when a
query could not reach the service.
"""

import time
import logging
import threading
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

logger = logging.getLogger(__name__)

ONLINE = "online"
OFFLINE = "offline"


class NetworkMonitor:
    """Thread-safe online/offline flag with an optional HTTP health check."""

    def __init__(
        self,
        online: bool = True,
        health_url: Optional[str] = None,
        timeout: float = 5.0,
        check_interval: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._online = online
        self._lock = threading.Lock()
        self._last_check: Optional[float] = None
        self._clock = clock
        self.health_url = health_url
        self.timeout = timeout
        self.check_interval = check_interval

    def is_online(self) -> bool:
        with self._lock:
            return self._online

    @property
    def status(self) -> str:
        return ONLINE if self.is_online() else OFFLINE

    def set_online(self, online: bool) -> None:
        with self._lock:
            changed = self._online != online
            self._online = online
        if changed:
            if online:
                logger.info("Network: back online")
            else:
                logger.warning("Network: gone offline, loads will use offline data")

    def check(self) -> bool:
        """
        Ping the health URL and update the flag.

        Without a health URL the current flag is returned unchanged.
        """
        if not self.health_url:
            return self.is_online()

        with self._lock:
            self._last_check = self._clock()

        try:
            response = requests.head(self.health_url, timeout=self.timeout)
            online = response.ok
        except RequestException as e:
            logger.debug(f"Health check failed: {e}")
            online = False

        self.set_online(online)
        return online

    def refresh(self) -> bool:
        """Run ``check`` when the last one is older than ``check_interval``."""
        if not self.health_url:
            return self.is_online()

        now = self._clock()
        with self._lock:
            due = self._last_check is None or now - self._last_check >= self.check_interval
            if due:
                # one caller per interval runs the check
                self._last_check = now
        if not due:
            return self.is_online()
        return self.check()

    def mark_unreachable(self) -> None:
        """
        Record that a query could not reach the service.

        Only honoured with a health URL; otherwise nothing would bring the flag
        back online.
        """
        if self.health_url:
            self.set_online(False)
