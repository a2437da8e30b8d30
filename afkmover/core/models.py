# afkmover/core/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Channel:
    id: int
    name: str


@dataclass(frozen=True)
class Client:
    id: int
    nickname: str
    channel_id: int
    idle_time_ms: int | None = None   # None = clientinfo failed this cycle


@dataclass(frozen=True)
class Snapshot:
    """One poll's view of the server. Order matters: clients are evaluated in list order."""
    channels: list[Channel] = field(default_factory=list)
    clients: list[Client] = field(default_factory=list)

    def occupants(self, channel_id: int) -> int:
        return sum(1 for c in self.clients if c.channel_id == channel_id)


@dataclass(frozen=True)
class MoveAction:
    client_id: int
    target_channel_id: int


class SkipReason(str, Enum):
    RECENT_JOIN_GRACE = "recent-join-grace"
    IDLE_UNKNOWN = "idle-unknown"
    IGNORED_CHANNEL = "ignored-channel"
    ALREADY_AFK = "already-afk"
    SOLO = "solo"
    POST_SOLO_GRACE = "post-solo-grace"


@dataclass(frozen=True)
class Skip:
    client_id: int
    reason: SkipReason


@dataclass
class Evaluation:
    moves: list[MoveAction] = field(default_factory=list)
    skips: list[Skip] = field(default_factory=list)

    def reason_for(self, client_id: int) -> SkipReason | None:
        for s in self.skips:
            if s.client_id == client_id:
                return s.reason
        return None
