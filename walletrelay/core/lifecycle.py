from __future__ import annotations

import logging
from typing import Any, List

from walletrelay.core.registry import Registry

log = logging.getLogger("walletrelay.lifecycle")


class ConnectionLifecycle:
    """Keeps the registry in step with transport open/close events.

    Peers mid-handshake with a closed connection are not notified; they find
    out through their own timeouts or a later RECEIVER_OFFLINE.
    """

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def opened(self, connection: Any) -> None:
        self.registry.attach(connection)
        log.info("New client connected. Total clients: %d", self.registry.connection_count)

    def closed(self, connection: Any) -> List[str]:
        wallets = self.registry.remove(connection)
        if wallets:
            log.info("Wallet(s) offline: %s", ", ".join(wallets))
        log.info("Client disconnected. Remaining clients: %d", self.registry.connection_count)
        return wallets


__all__ = ["ConnectionLifecycle"]
