# afkmover/services/session.py
from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlsplit

from ts3.common import TS3Error
from ts3.query import TS3QueryError, TS3ServerConnection

from afkmover.core.errors import ConfigurationError, QueryError, SessionError, SessionTimeout
from afkmover.core.models import Channel, Client

log = logging.getLogger("afkmover.session")

DEFAULT_PORT = 10011

# server answers list commands with this instead of an empty body
EMPTY_RESULT_SET = 1281

# client_type=1 marks ServerQuery logins (including our own)
QUERY_CLIENT_TYPE = "1"

# what a dead socket looks like coming out of the blocking ts3 transport
_TRANSPORT_ERRORS = (TS3Error, OSError, EOFError)


def parse_server_url(url: str) -> tuple[str, int]:
    """
    Accepts `host`, `host:port` or `telnet://host:port`.
    """
    raw = url.strip()
    if "://" not in raw:
        raw = "telnet://" + raw

    parts = urlsplit(raw)
    if parts.scheme != "telnet":
        raise ConfigurationError(f"unsupported ServerQuery scheme {parts.scheme!r} (only telnet)")
    if not parts.hostname:
        raise ConfigurationError(f"no host in server url {url!r}")

    try:
        port = parts.port or DEFAULT_PORT
    except ValueError:
        raise ConfigurationError(f"bad port in server url {url!r}") from None
    return parts.hostname, port


def _int_field(rec: dict[str, str], key: str) -> int:
    try:
        return int(rec[key])
    except (KeyError, ValueError):
        raise SessionError(f"malformed record, bad {key!r}: {rec}") from None


def _query_error(exc: TS3QueryError, cmd: str) -> QueryError:
    error = getattr(getattr(exc, "resp", None), "error", None) or {}
    try:
        error_id = int(error.get("id", -1))
    except (TypeError, ValueError):
        error_id = -1
    return QueryError(error_id, error.get("msg", ""), command=cmd)


class Session:
    """
    Typed ServerQuery operations for one virtual server, on top of py-ts3.

    ts3 is blocking, so every call runs in a worker thread under a timeout.
    Calls are still strictly one at a time. A timed out or failed transport
    leaves the connection unusable; it is re-opened (connect, login, use)
    by the next ensure_connected().
    """

    def __init__(self, settings, connection_factory=TS3ServerConnection):
        self.settings = settings
        self.host, self.port = parse_server_url(settings.server_url)
        self._factory = connection_factory
        self._conn = None
        self._broken = False

    @property
    def connected(self) -> bool:
        return self._conn is not None and not self._broken

    async def _call(self, what: str, fn, *args, **kwargs):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs), self.settings.query_timeout_seconds
            )
        except asyncio.TimeoutError:
            # the reply may still arrive on the socket; never reuse it
            self._broken = True
            raise SessionTimeout(f"{what} timed out after {self.settings.query_timeout_seconds}s") from None
        except TS3QueryError as exc:
            raise _query_error(exc, what) from exc
        except _TRANSPORT_ERRORS as exc:
            self._broken = True
            raise SessionError(f"{what} failed: {exc}") from exc

    async def _send(self, cmd: str, *options: str, **params) -> list[dict[str, str]]:
        if not self.connected:
            raise SessionError("not connected")

        try:
            resp = await self._call(cmd, self._conn.exec_, cmd, *options, **params)
        except QueryError as exc:
            if exc.error_id == EMPTY_RESULT_SET:
                return []
            raise
        return list(resp.parsed)

    # ---------------- lifecycle ----------------

    async def ensure_connected(self) -> None:
        if self.connected:
            return

        if self._conn is not None:
            log.warning("ServerQuery connection lost, reconnecting to %s:%s", self.host, self.port)
            await self.close()

        self._conn = await self._call("connect", self._factory, f"telnet://{self.host}:{self.port}")
        self._broken = False

        try:
            await self.login(self.settings.user_name, self.settings.password)
            await self.select_server(self.settings.server_id)

            if self.settings.nickname:
                await self.set_nickname(self.settings.nickname)

            me = await self.whoami()
        except SessionError:
            await self.close()
            raise

        log.info(
            "logged in as %s (client_id=%s) on server %s",
            me.get("client_login_name", "?"), me.get("client_id", "?"), me.get("virtualserver_id", "?"),
        )

    async def close(self) -> None:
        conn, self._conn = self._conn, None
        self._broken = False
        if conn is None:
            return
        try:
            await asyncio.wait_for(asyncio.to_thread(conn.close), self.settings.query_timeout_seconds)
        except (asyncio.TimeoutError, *_TRANSPORT_ERRORS) as exc:
            log.debug("close: %s", exc)

    # ---------------- commands ----------------

    async def login(self, user: str, password: str) -> None:
        await self._send("login", client_login_name=user, client_login_password=password)

    async def select_server(self, server_id: int) -> None:
        await self._send("use", sid=server_id)

    async def set_nickname(self, name: str) -> bool:
        """Best effort: a taken nickname shouldn't stop the mover."""
        try:
            await self._send("clientupdate", client_nickname=name)
        except QueryError as exc:
            log.warning("could not set nickname %r: %s", name, exc)
            return False
        return True

    async def whoami(self) -> dict[str, str]:
        recs = await self._send("whoami")
        return recs[0] if recs else {}

    async def list_channels(self) -> list[Channel]:
        recs = await self._send("channellist")
        return [Channel(id=_int_field(r, "cid"), name=r.get("channel_name", "")) for r in recs]

    async def list_clients(self) -> list[Client]:
        recs = await self._send("clientlist")
        clients = []
        for r in recs:
            if r.get("client_type") == QUERY_CLIENT_TYPE:
                continue
            clients.append(
                Client(
                    id=_int_field(r, "clid"),
                    nickname=r.get("client_nickname", ""),
                    channel_id=_int_field(r, "cid"),
                )
            )
        return clients

    async def get_client_info(self, client_id: int) -> dict[str, str]:
        recs = await self._send("clientinfo", clid=client_id)
        if not recs:
            raise SessionError(f"empty clientinfo for client {client_id}")
        return recs[0]

    async def move_client(self, client_id: int, channel_id: int) -> None:
        await self._send("clientmove", clid=client_id, cid=channel_id)
