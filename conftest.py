from __future__ import annotations

import pytest
import websockets

from walletrelay.core.registry import Registry


class FakeConnection:
    """Stands in for a transport handle; records every frame sent to it."""

    def __init__(self, name: str = "conn", closed: bool = False) -> None:
        self.name = name
        self.closed = closed
        self.sent: list[dict] = []

    async def send(self, frame: dict) -> None:
        if self.closed:
            raise websockets.ConnectionClosedError(None, None)
        self.sent.append(frame)

    def __repr__(self) -> str:
        return f"FakeConnection({self.name!r})"


@pytest.fixture
def registry():
    return Registry()


@pytest.fixture
def make_conn():
    return FakeConnection
