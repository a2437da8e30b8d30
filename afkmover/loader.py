# afkmover/loader.py
from __future__ import annotations

import logging

from afkmover.core.state import StateStore
from afkmover.services.session import Session
from afkmover.workers.poller import AfkPoller

log = logging.getLogger("afkmover.loader")


def load_all(settings, session=None, state=None) -> AfkPoller:
    """
    Wire one server session: ServerQuery session, its own state store, the poller.

    Each call builds independent state, so several servers can run side by side.
    """
    if session is None:
        session = Session(settings)

    if state is None:
        state = StateStore(recent_join_window_seconds=settings.recent_join_window_seconds)

    poller = AfkPoller(session, settings, state=state)
    log.info("poller ready for %s:%s sid=%s", getattr(session, "host", "?"), getattr(session, "port", "?"), settings.server_id)
    return poller
