from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

log = logging.getLogger("walletrelay.registry")


class Registry:
    """Live mapping between transport connections and wallet identities.

    Two views are kept:
      • identity_by_conn: connection -> wallet (None until REGISTER)
      • conn_by_identity: wallet -> connection (last registration wins)

    A connection that re-registers under a new wallet leaves its old wallet
    pointing at it until the connection closes, so remove() scans the
    identity view instead of trusting identity_by_conn alone.

    Connections are opaque handles compared by object identity.
    """

    def __init__(self) -> None:
        self._identity_by_conn: Dict[Any, Optional[str]] = {}
        self._conn_by_identity: Dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def attach(self, connection: Any) -> None:
        self._identity_by_conn.setdefault(connection, None)

    def register(self, connection: Any, identity: str) -> None:
        previous = self._conn_by_identity.get(identity)
        self._identity_by_conn[connection] = identity
        self._conn_by_identity[identity] = connection
        if previous is not None and previous is not connection:
            log.info("Wallet %s moved to a new connection", identity)

    def remove(self, connection: Any) -> List[str]:
        """Forget a connection entirely; returns the wallets it was reachable by."""

        self._identity_by_conn.pop(connection, None)
        stale: list[str] = [w for w, c in self._conn_by_identity.items() if c is connection]
        for wallet in stale:
            del self._conn_by_identity[wallet]
        return stale

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, identity: str) -> Optional[Any]:
        return self._conn_by_identity.get(identity)

    def identity_of(self, connection: Any) -> Optional[str]:
        return self._identity_by_conn.get(connection)

    @property
    def connection_count(self) -> int:
        return len(self._identity_by_conn)

    @property
    def identity_count(self) -> int:
        return len(self._conn_by_identity)


__all__ = ["Registry"]
