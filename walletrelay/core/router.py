from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Protocol, Tuple, Union

import websockets

from walletrelay.core import proto
from walletrelay.core.registry import Registry

log = logging.getLogger("walletrelay.router")

Route = Tuple[str, str]


class Sendable(Protocol):
    async def send(self, frame: Dict[str, Any]) -> None: ...


# relayed kind -> (outbound builder, inbound payload attribute)
FrameBuilder = Callable[[Any, str], Dict[str, Any]]
RELAYS: Dict[str, Tuple[FrameBuilder, str]] = {
    proto.CREATE_OFFER: (proto.offer_frame, "offer"),
    proto.FORWARD_ANSWER: (proto.answer_frame, "answer"),
    proto.FORWARD_ICE_CANDIDATE: (proto.ice_candidate_frame, "candidate"),
}


class MessageRouter:
    """Routes signaling envelopes between wallets registered in a Registry.

    Stateless per message: everything it knows lives in the registry. The
    returned (action, detail) pair describes what happened:

      ("registered", wallet)  REGISTER applied
      ("delivered", to)       payload relayed to the target connection
      ("offline", to)         RECEIVER_OFFLINE sent back to the sender
      ("dropped", reason)     malformed frame, nothing sent
      ("ignored", type)       unknown type, nothing sent
    """

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    async def handle_raw(self, conn: Sendable, raw: Union[str, bytes]) -> Route:
        try:
            envelope = proto.parse_inbound(raw)
        except ValueError as exc:
            log.warning("Dropping malformed frame: %s", _first_line(exc))
            return ("dropped", "malformed")
        log.debug("Received %r", envelope)
        return await self.dispatch(conn, envelope)

    async def dispatch(self, conn: Sendable, envelope: proto.Envelope) -> Route:
        if isinstance(envelope, proto.Register):
            self.registry.register(conn, envelope.wallet)
            log.info("Registered wallet %s", envelope.wallet)
            return ("registered", envelope.wallet)

        relay = RELAYS.get(envelope.type)
        if relay is None:
            log.info("Unknown message type: %s", envelope.type)
            return ("ignored", envelope.type)

        if not isinstance(envelope, proto.INBOUND_MODELS[envelope.type]):
            log.warning("Dropping unvalidated %s envelope", envelope.type)
            return ("dropped", "malformed")

        build, field = relay
        # unregistered senders are relayed with an empty "from"
        sender = self.registry.identity_of(conn) or ""
        frame = build(getattr(envelope, field), sender)
        return await self._relay(conn, envelope.to, frame)

    async def _relay(self, origin: Sendable, to: str, frame: Dict[str, Any]) -> Route:
        # runs inside the sender's read loop; a target that stops draining is
        # bounded by the transport's keepalive ping timeout, which closes it
        target = self.registry.resolve(to)
        if target is not None:
            try:
                await target.send(frame)
                return ("delivered", to)
            except websockets.ConnectionClosed:
                log.warning("Send of %s to %s failed: connection closed", frame["type"], to)

        log.info("Client %s is offline.", to)
        await origin.send(proto.receiver_offline_frame(to))
        return ("offline", to)


def _first_line(exc: Exception) -> str:
    text = str(exc)
    return text.splitlines()[0] if text else type(exc).__name__


__all__ = ["MessageRouter", "Route", "Sendable", "RELAYS"]
