from __future__ import annotations

import json
from typing import Any, Dict, Type, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Type tags
# ---------------------------------------------------------------------------

REGISTER = "REGISTER"
CREATE_OFFER = "CREATE_OFFER"
FORWARD_ANSWER = "FORWARD_ANSWER"
FORWARD_ICE_CANDIDATE = "FORWARD_ICE_CANDIDATE"

OFFER = "OFFER"
ANSWER = "ANSWER"
ICE_CANDIDATE = "ICE_CANDIDATE"
RECEIVER_OFFLINE = "RECEIVER_OFFLINE"

OFFLINE_MESSAGE = "Client {to} is offline. please ask them to open app"


# ---------------------------------------------------------------------------
# Inbound envelopes
# ---------------------------------------------------------------------------

class Envelope(BaseModel):
    """Any JSON object carrying a string ``type`` tag."""

    type: str

    model_config = ConfigDict(extra="allow")


class Register(Envelope):
    wallet: str


class CreateOffer(Envelope):
    to: str
    offer: Any


class ForwardAnswer(Envelope):
    to: str
    answer: Any


class ForwardIceCandidate(Envelope):
    to: str
    candidate: Any


INBOUND_MODELS: Dict[str, Type[Envelope]] = {
    REGISTER: Register,
    CREATE_OFFER: CreateOffer,
    FORWARD_ANSWER: ForwardAnswer,
    FORWARD_ICE_CANDIDATE: ForwardIceCandidate,
}


def parse_inbound(raw: Union[str, bytes]) -> Envelope:
    """Decode one transport message into the model matching its ``type``.

    Raises ValueError for anything that is not a JSON object with a string
    ``type`` or that lacks the fields its type requires. Unknown types come
    back as a bare Envelope.
    """

    try:
        data = json.loads(raw)
    except RecursionError:
        raise ValueError("envelope nesting too deep") from None
    if not isinstance(data, dict):
        raise ValueError("envelope must be a JSON object")
    type_ = data.get("type")
    if not isinstance(type_, str):
        raise ValueError("envelope missing string 'type'")
    model = INBOUND_MODELS.get(type_, Envelope)
    return model.model_validate(data)


# ---------------------------------------------------------------------------
# Outbound envelopes
# ---------------------------------------------------------------------------

class _Relayed(BaseModel):
    type: str
    from_: str = Field(alias="from")

    model_config = ConfigDict(populate_by_name=True)


class OfferFrame(_Relayed):
    type: str = OFFER
    offer: Any


class AnswerFrame(_Relayed):
    type: str = ANSWER
    answer: Any


class IceCandidateFrame(_Relayed):
    type: str = ICE_CANDIDATE
    iceCandidate: Any


def offer_frame(offer: Any, sender: str) -> Dict[str, Any]:
    return OfferFrame(offer=offer, from_=sender).model_dump(by_alias=True)


def answer_frame(answer: Any, sender: str) -> Dict[str, Any]:
    return AnswerFrame(answer=answer, from_=sender).model_dump(by_alias=True)


def ice_candidate_frame(candidate: Any, sender: str) -> Dict[str, Any]:
    # inbound "candidate" is relayed as "iceCandidate"
    return IceCandidateFrame(iceCandidate=candidate, from_=sender).model_dump(by_alias=True)


def receiver_offline_frame(to: str) -> Dict[str, Any]:
    return {"type": RECEIVER_OFFLINE, "message": OFFLINE_MESSAGE.format(to=to)}


def encode(frame: Dict[str, Any]) -> str:
    """Compact JSON text for the wire."""

    return json.dumps(frame, separators=(",", ":"))


__all__ = [
    "REGISTER",
    "CREATE_OFFER",
    "FORWARD_ANSWER",
    "FORWARD_ICE_CANDIDATE",
    "OFFER",
    "ANSWER",
    "ICE_CANDIDATE",
    "RECEIVER_OFFLINE",
    "OFFLINE_MESSAGE",
    "Envelope",
    "Register",
    "CreateOffer",
    "ForwardAnswer",
    "ForwardIceCandidate",
    "INBOUND_MODELS",
    "parse_inbound",
    "offer_frame",
    "answer_frame",
    "ice_candidate_frame",
    "receiver_offline_frame",
    "encode",
]
