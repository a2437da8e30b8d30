# afkmover/core/engine.py
from __future__ import annotations

import logging

from afkmover.core.errors import ConfigurationError
from afkmover.core.models import Evaluation, MoveAction, Skip, SkipReason, Snapshot
from afkmover.core.state import StateStore
from afkmover.core.timecore import fmt_idle

log = logging.getLogger("afkmover.engine")


def resolve_afk_channel_id(snapshot: Snapshot, afk_channel_name: str) -> int:
    for ch in snapshot.channels:
        if ch.name == afk_channel_name:
            return ch.id
    raise ConfigurationError(f"AFK channel {afk_channel_name!r} not found on server")


def evaluate(snapshot: Snapshot, settings, state: StateStore, now_ts: float) -> Evaluation:
    """
    Decide which idle clients go to the AFK channel this cycle.

    Never talks to the server. The only side effect is on `state`
    (join detection, solo flags). Moves come back in snapshot order.

    Exception cascade for a client idle past the threshold, first match wins:
      ignored channel -> already in AFK -> alone in channel (marked solo)
      -> just stopped being solo (grace, if allowed) -> move
    """
    state.observe_memberships(snapshot.clients, now_ts)

    afk_channel_id = resolve_afk_channel_id(snapshot, settings.afk_channel_name)
    ignored_ids = {ch.id for ch in snapshot.channels if ch.name in settings.ignored_channel_names}

    result = Evaluation()

    def skip(client, reason: SkipReason) -> None:
        result.skips.append(Skip(client.id, reason))
        log.info("skip client=%s (%s) channel=%s reason=%s",
                 client.id, client.nickname, client.channel_id, reason.value)

    for client in snapshot.clients:
        if state.is_recent_join(client.channel_id, now_ts):
            skip(client, SkipReason.RECENT_JOIN_GRACE)
            continue

        if client.idle_time_ms is None:
            skip(client, SkipReason.IDLE_UNKNOWN)
            continue

        if client.idle_time_ms <= settings.max_idle_time_ms:
            # company arrived while active: the solo look-back is spent
            if snapshot.occupants(client.channel_id) >= 2:
                state.clear_solo(client.id)
            continue

        if client.channel_id in ignored_ids:
            skip(client, SkipReason.IGNORED_CHANNEL)
            continue

        if client.channel_id == afk_channel_id:
            skip(client, SkipReason.ALREADY_AFK)
            continue

        if snapshot.occupants(client.channel_id) < 2:
            state.mark_solo(client.id)
            skip(client, SkipReason.SOLO)
            continue

        if state.is_solo(client.id) and settings.allow_grace_period:
            state.clear_solo(client.id)
            skip(client, SkipReason.POST_SOLO_GRACE)
            continue

        state.clear_solo(client.id)
        result.moves.append(MoveAction(client.id, afk_channel_id))
        log.info("move client=%s (%s) idle=%s channel=%s -> %s",
                 client.id, client.nickname, fmt_idle(client.idle_time_ms),
                 client.channel_id, afk_channel_id)

    return result
