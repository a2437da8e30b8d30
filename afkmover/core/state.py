# afkmover/core/state.py
from __future__ import annotations

from typing import Iterable

from afkmover.core.models import Client

RECENT_JOIN_WINDOW_SECONDS = 10


class StateStore:
    """
    Runtime-only state for one server session, carried between poll cycles.

    Holds:
    - solo tracking (clients last seen alone in their channel while idle)
    - recent joins (channel -> last join timestamp)
    - last seen memberships (client -> channel), used to detect joins

    Nothing here is persisted; a restart begins empty.
    """

    def __init__(self, recent_join_window_seconds: int = RECENT_JOIN_WINDOW_SECONDS):
        self.recent_join_window_seconds = recent_join_window_seconds

        # client_id
        self.solo: set[int] = set()

        # channel_id -> join_ts (float seconds)
        self.recent_join: dict[int, float] = {}

        # client_id -> channel_id, None until the first snapshot is observed
        self.last_seen: dict[int, int] | None = None

    # ---------------- recent joins ----------------

    def is_recent_join(self, channel_id: int, now_ts: float) -> bool:
        ts = self.recent_join.get(channel_id)
        if ts is None:
            return False
        return now_ts - ts < self.recent_join_window_seconds

    def record_join(self, channel_id: int, now_ts: float) -> None:
        self.recent_join[channel_id] = now_ts

    def prune_joins(self, now_ts: float) -> None:
        for channel_id, ts in list(self.recent_join.items()):
            if now_ts - ts >= self.recent_join_window_seconds:
                self.recent_join.pop(channel_id, None)

    # ---------------- solo ----------------

    def is_solo(self, client_id: int) -> bool:
        return client_id in self.solo

    def mark_solo(self, client_id: int) -> None:
        self.solo.add(client_id)

    def clear_solo(self, client_id: int) -> None:
        self.solo.discard(client_id)

    # ---------------- memberships ----------------

    def observe_memberships(self, clients: Iterable[Client], now_ts: float) -> set[int]:
        """
        Diff the current client -> channel mapping against the previous one.

        A client that switched channel, or connected since the last snapshot,
        counts as a join into its current channel. The first snapshot only
        seeds the mapping. Returns the channel ids that saw a join.
        """
        current = {c.id: c.channel_id for c in clients}
        joined: set[int] = set()

        if self.last_seen is not None:
            for client_id, channel_id in current.items():
                if self.last_seen.get(client_id) != channel_id:
                    joined.add(channel_id)
            for channel_id in joined:
                self.record_join(channel_id, now_ts)

        # disconnected clients lose their solo flag (ids get reused by the server)
        for client_id in list(self.solo):
            if client_id not in current:
                self.solo.discard(client_id)

        self.last_seen = current
        self.prune_joins(now_ts)
        return joined
