# afkmover/workers/poller.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from discord.ext import tasks

from afkmover.core.clientinfo import parse_idle_time_ms
from afkmover.core.engine import evaluate
from afkmover.core.errors import ClientInfoError, PollerGaveUp, SessionError
from afkmover.core.models import Client, Snapshot
from afkmover.core.state import StateStore
from afkmover.core.timecore import now_utc_ts

log = logging.getLogger("afkmover.poller")


@dataclass
class CycleReport:
    ok: bool
    moved: list[int] = field(default_factory=list)
    failed_moves: list[int] = field(default_factory=list)
    skipped: int = 0


class AfkPoller:
    """
    Polls one virtual server and moves idle clients to the AFK channel.

    - One cycle at a time: fetch -> evaluate -> apply moves, then wait for the next tick
    - Listing failure: log, back off, skip the cycle (engine and state untouched)
    - clientinfo / move failure: log, only that client is affected
    - Too many failed cycles in a row: stop with PollerGaveUp
    - stop() lets the current cycle finish, then closes the session
    """

    def __init__(self, session, settings, state: StateStore | None = None, clock=now_utc_ts):
        self.session = session
        self.settings = settings
        self.state = state or StateStore(settings.recent_join_window_seconds)
        self.clock = clock
        self.consecutive_failures = 0

        self.tick.change_interval(seconds=settings.poll_interval_seconds)

    def start(self) -> None:
        self.tick.start()

    def stop(self) -> None:
        log.info("shutdown requested, finishing current cycle")
        self.tick.stop()

    async def wait(self) -> None:
        task = self.tick.get_task()
        if task is not None:
            await task

    # ---------------- tick loop ----------------

    @tasks.loop(seconds=10)
    async def tick(self):
        report = await self.run_cycle()
        self.record(report)

    @tick.before_loop
    async def before_tick(self):
        # first login happens here so that bad credentials end the task
        await self.session.ensure_connected()
        log.info("polling every %ss", self.settings.poll_interval_seconds)

    @tick.after_loop
    async def after_tick(self):
        await self.session.close()
        log.info("poller stopped")

    @tick.error
    async def on_tick_error(self, error: BaseException):
        log.error("poller stopped on fatal error: %s", error)

    def record(self, report: CycleReport) -> None:
        if report.ok:
            self.consecutive_failures = 0
            return

        self.consecutive_failures += 1
        limit = self.settings.max_cycle_failures
        log.warning("cycle failed (%s in a row%s)", self.consecutive_failures, f", limit {limit}" if limit else "")
        if limit and self.consecutive_failures >= limit:
            raise PollerGaveUp(self.consecutive_failures)

    # ---------------- one cycle ----------------

    async def run_cycle(self) -> CycleReport:
        # snapshot time is the start of the cycle, before any clientinfo round trips
        now_ts = self.clock()
        try:
            await self.session.ensure_connected()
            channels = await self.session.list_channels()
            clients = await self.session.list_clients()
        except SessionError as exc:
            log.error("cycle skipped, could not fetch channels/clients: %s", exc)
            await asyncio.sleep(self.settings.retry_backoff_seconds)
            return CycleReport(ok=False)

        snapshot = Snapshot(channels=channels, clients=[await self._with_idle_time(c) for c in clients])

        evaluation = evaluate(snapshot, self.settings, self.state, now_ts)
        report = CycleReport(ok=True, skipped=len(evaluation.skips))

        for move in evaluation.moves:
            try:
                await self.session.move_client(move.client_id, move.target_channel_id)
            except SessionError as exc:
                log.error("move failed client=%s -> %s: %s", move.client_id, move.target_channel_id, exc)
                report.failed_moves.append(move.client_id)
                continue

            log.info("moved client=%s -> channel=%s", move.client_id, move.target_channel_id)
            report.moved.append(move.client_id)

        log.debug(
            "cycle done: channels=%s clients=%s moved=%s failed=%s skipped=%s",
            len(channels), len(clients), len(report.moved), len(report.failed_moves), report.skipped,
        )
        return report

    async def _with_idle_time(self, client: Client) -> Client:
        try:
            info = await self.session.get_client_info(client.id)
            idle_ms = parse_idle_time_ms(info)
        except (SessionError, ClientInfoError) as exc:
            log.error("clientinfo failed client=%s (%s): %s", client.id, client.nickname, exc)
            return client

        return Client(id=client.id, nickname=client.nickname, channel_id=client.channel_id, idle_time_ms=idle_ms)
