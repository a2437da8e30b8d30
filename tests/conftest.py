from __future__ import annotations

import pytest

from afkmover.config import Settings
from afkmover.core.errors import SessionError
from afkmover.core.models import Channel, Client


def make_settings(**overrides) -> Settings:
    values = dict(
        user_name="serveradmin",
        password="secret",
        server_url="127.0.0.1:10011",
        server_id=1,
        afk_channel_name="AFK",
        max_idle_time_ms=60_000,
        ignored_channel_names=frozenset({"Quiet"}),
        allow_grace_period=True,
        retry_backoff_seconds=0,
        query_timeout_seconds=2.0,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


class FakeSession:
    """In-memory stand-in for Session. Failures are injected per operation."""

    def __init__(self, channels, clients, idle):
        self.channels = list(channels)
        self.clients = list(clients)
        self.idle = dict(idle)            # client_id -> idle ms, or a raw string for bad values
        self.fail_lists = False
        self.fail_info: set[int] = set()
        self.fail_moves: set[int] = set()
        self.moves: list[tuple[int, int]] = []
        self.info_calls: list[int] = []
        self.fail_connect = False
        self.connect_calls = 0
        self.closed = False

    async def ensure_connected(self):
        self.connect_calls += 1
        if self.fail_connect:
            raise SessionError("invalid loginname or password")

    async def close(self):
        self.closed = True

    async def list_channels(self):
        if self.fail_lists:
            raise SessionError("channellist timed out")
        return list(self.channels)

    async def list_clients(self):
        if self.fail_lists:
            raise SessionError("clientlist timed out")
        return list(self.clients)

    async def get_client_info(self, client_id):
        self.info_calls.append(client_id)
        if client_id in self.fail_info:
            raise SessionError("invalid clientID")
        raw = self.idle.get(client_id)
        if raw is None:
            return {"client_nickname": "x"}
        return {"client_idle_time": str(raw), "client_nickname": "x"}

    async def move_client(self, client_id, channel_id):
        if client_id in self.fail_moves:
            raise SessionError("insufficient client permissions")
        self.moves.append((client_id, channel_id))
        # reflect the move in the next listing
        self.clients = [
            Client(c.id, c.nickname, channel_id) if c.id == client_id else c
            for c in self.clients
        ]


LOBBY, AFK, QUIET = 1, 2, 3

CHANNELS = [Channel(LOBBY, "Lobby"), Channel(AFK, "AFK"), Channel(QUIET, "Quiet")]


@pytest.fixture
def fake_session():
    clients = [Client(10, "A", LOBBY), Client(11, "B", LOBBY), Client(12, "C", QUIET)]
    return FakeSession(CHANNELS, clients, {10: 120_000, 11: 500, 12: 900_000})
