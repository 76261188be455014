"""
Network reachability tracking driven by the host environment's online/offline signal
"""

import socket
from typing import Callable, List, Optional
from urllib.parse import urlparse

from core.logging_config import get_logger

logger = get_logger(__name__)

ConnectivityListener = Callable[[bool], None]


class ConnectivityMonitor:
    """Holds the current online flag and notifies listeners on transitions

    The monitor never polls. The host feeds it connectivity events through
    set_online() (or go_online()/go_offline()); tests drive it the same way.
    """

    def __init__(self, reachability: Optional[Callable[[], bool]] = None):
        """
        Args:
            reachability: Indicator read once at construction for the initial
                value. Defaults to assuming the network is reachable.
        """
        self._online = bool(reachability()) if reachability else True
        self._listeners: List[ConnectivityListener] = []
        self.transitions = 0

        logger.debug(f"Connectivity monitor started ({'online' if self._online else 'offline'})")

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a transition listener; returns a callable that unsubscribes it"""
        self._listeners.append(listener)

        def unsubscribe():
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: ConnectivityListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_online(self, online: bool) -> bool:
        """
        Apply a connectivity signal from the environment.

        Returns:
            True if the signal changed the state (listeners were notified)
        """
        online = bool(online)
        if online == self._online:
            return False

        self._online = online
        self.transitions += 1
        logger.info(f"Connectivity changed: {'online' if online else 'offline'}")

        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                logger.exception("Error in connectivity listener")

        return True

    def go_online(self) -> bool:
        return self.set_online(True)

    def go_offline(self) -> bool:
        return self.set_online(False)


def probe_reachability(url: str, timeout: float = 3.0) -> Callable[[], bool]:
    """
    Build a one-shot reachability indicator for the service behind url.

    The returned callable opens (and immediately closes) a TCP connection to
    the service host. The host uses it to seed ConnectivityMonitor at startup
    and to re-check the service after a connection error.
    """
    parsed = urlparse(url)
    host = parsed.hostname or "localhost"
    port = parsed.port or (443 if parsed.scheme == "https" else 80)

    def check() -> bool:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError as e:
            logger.warning(f"Service {host}:{port} not reachable: {e}")
            return False

    return check
