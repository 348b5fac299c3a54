from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import websockets

from walletrelay.core import proto
from walletrelay.core.lifecycle import ConnectionLifecycle
from walletrelay.core.registry import Registry
from walletrelay.core.router import MessageRouter

log = logging.getLogger("walletrelay.server.runtime")

DEFAULT_LISTEN = "0.0.0.0:8080"
DEFAULT_MAX_MESSAGE_BYTES = 1 << 20
DEFAULT_PING_SECS = 20.0


@dataclass(eq=False, slots=True)
class Connection:
    websocket: Any
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def send(self, frame: Dict[str, Any]) -> None:
        text = proto.encode(frame)
        async with self.send_lock:
            await self.websocket.send(text)


class RelayRuntime:
    """Websocket front end for the wallet signaling relay."""

    def __init__(self, config: Dict[str, Any], registry: Optional[Registry] = None) -> None:
        self.cfg = config
        self.listen_host, self.listen_port = self._parse_listen(config.get("listen", DEFAULT_LISTEN))
        self.max_message_bytes = int(config.get("max_message_bytes", DEFAULT_MAX_MESSAGE_BYTES))
        # a peer that stops answering pings is closed, which also unblocks relays to it
        self.ping_interval = float(config.get("ping_interval_secs", DEFAULT_PING_SECS))
        self.ping_timeout = float(config.get("ping_timeout_secs", DEFAULT_PING_SECS))

        self.registry = registry if registry is not None else Registry()
        self.router = MessageRouter(self.registry)
        self.lifecycle = ConnectionLifecycle(self.registry)

        self._connections: list[Connection] = []
        self._ws_server: Optional[Any] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        self._ws_server = await websockets.serve(
            self._handle_connection,
            self.listen_host,
            self.listen_port,
            max_size=self.max_message_bytes,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
        )
        log.info("Signaling server started on ws://%s:%d", self.listen_host, self.bound_port)

    async def stop(self) -> None:
        for conn in list(self._connections):
            try:
                await conn.websocket.close()
            except Exception:
                log.debug("Error closing %s", self._fmt_remote(conn.websocket), exc_info=True)
        self._connections.clear()

        if self._ws_server is not None:
            self._ws_server.close()
            await self._ws_server.wait_closed()
            self._ws_server = None

    @property
    def bound_port(self) -> int:
        if self._ws_server is None:
            return self.listen_port
        for sock in self._ws_server.sockets:
            return sock.getsockname()[1]
        return self.listen_port

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    async def _handle_connection(self, websocket: Any) -> None:
        conn = Connection(websocket=websocket)
        self._connections.append(conn)
        self.lifecycle.opened(conn)
        log.debug("Accepted connection from %s", self._fmt_remote(websocket))
        try:
            async for raw in websocket:
                try:
                    await self.router.handle_raw(conn, raw)
                except websockets.ConnectionClosed:
                    raise
                except Exception:
                    log.exception("Unhandled error routing frame from %s", self._fmt_remote(websocket))
        except websockets.ConnectionClosed:
            pass
        finally:
            self.lifecycle.closed(conn)
            try:
                self._connections.remove(conn)
            except ValueError:
                pass

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_listen(value: str) -> tuple[str, int]:
        host, port = value.rsplit(":", 1)
        return host, int(port)

    @staticmethod
    def _fmt_remote(websocket: Any) -> str:
        peer = getattr(websocket, "remote_address", None)
        if isinstance(peer, tuple):
            return f"{peer[0]}:{peer[1]}"
        return str(peer)


__all__ = ["Connection", "RelayRuntime"]
