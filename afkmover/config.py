from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
from typing import Mapping

from dotenv import load_dotenv

from afkmover.core.errors import ConfigurationError
from afkmover.core.timecore import seconds_to_ms

log = logging.getLogger("afkmover.config")


def _normalize_bool(v: str | None, default: bool) -> bool:
    """
    Accepts the usual spellings; unset/empty -> default.
    """
    s = (v or "").strip().lower()
    if not s:
        return default
    if s in ("1", "true", "yes", "on", "y"):
        return True
    if s in ("0", "false", "no", "off", "n"):
        return False
    raise ConfigurationError(f"not a boolean: {v!r}")


@dataclass(frozen=True)
class Settings:
    # ---------------- ServerQuery login ----------------
    user_name: str
    password: str
    server_url: str
    server_id: int

    # ---------------- AFK policy ----------------
    afk_channel_name: str
    max_idle_time_ms: int
    ignored_channel_names: frozenset[str] = frozenset()
    allow_grace_period: bool = True             # one skipped cycle after a solo client gets company
    recent_join_window_seconds: int = 10        # channel join shields everyone in it for this long

    # ---------------- Polling ----------------
    nickname: str = ""                          # empty = keep server-assigned query nickname
    poll_interval_seconds: int = 10
    retry_backoff_seconds: int = 5              # wait after a failed channel/client listing
    query_timeout_seconds: float = 10.0
    max_cycle_failures: int = 12                # consecutive failed cycles before giving up (0 = never)

    log_level: str = "INFO"


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    if environ is None:
        # .env is for local runs; never overrides the real environment
        load_dotenv(override=False)
        environ = os.environ

    def required(key: str) -> str:
        v = (environ.get(key) or "").strip()
        if not v:
            raise ConfigurationError(f"{key} not set")
        return v

    def integer(key: str, raw: str, minimum: int = 0) -> int:
        try:
            n = int(raw)
        except ValueError:
            raise ConfigurationError(f"{key} is not a number: {raw!r}") from None
        if n < minimum:
            raise ConfigurationError(f"{key} must be >= {minimum}, got {n}")
        return n

    def optional_int(key: str, default: int, minimum: int = 0) -> int:
        raw = (environ.get(key) or "").strip()
        return integer(key, raw, minimum) if raw else default

    user_name = required("TS3_USER")
    password = required("TS3_PASSWORD")
    server_url = required("TS3_URL")
    server_id = integer("TS3_SERVER_ID", required("TS3_SERVER_ID"), minimum=1)
    afk_channel_name = required("TS3_AFK_CHANNEL_NAME")
    max_idle_sec = integer("TS3_MAX_IDLE_TIME_SEC", required("TS3_MAX_IDLE_TIME_SEC"))

    # JSON array of channel names, e.g. ["Quiet", "Music"]
    ignored_raw = (environ.get("TS3_IGNORED_CHANNELS") or "").strip() or "[]"
    try:
        ignored = json.loads(ignored_raw)
    except json.JSONDecodeError:
        raise ConfigurationError("TS3_IGNORED_CHANNELS is not a valid json array") from None
    if not isinstance(ignored, list) or not all(isinstance(x, str) for x in ignored):
        raise ConfigurationError("TS3_IGNORED_CHANNELS must be a json array of strings")

    try:
        allow_grace = _normalize_bool(environ.get("TS3_ALLOW_GRACE_PERIOD"), default=True)
    except ConfigurationError as exc:
        raise ConfigurationError(f"TS3_ALLOW_GRACE_PERIOD: {exc}") from None

    log_level = (environ.get("LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in logging.getLevelNamesMapping():
        raise ConfigurationError(f"LOG_LEVEL is not a logging level: {log_level!r}")

    settings = Settings(
        user_name=user_name,
        password=password,
        server_url=server_url,
        server_id=server_id,
        afk_channel_name=afk_channel_name,
        max_idle_time_ms=seconds_to_ms(max_idle_sec),
        ignored_channel_names=frozenset(ignored),
        allow_grace_period=allow_grace,
        nickname=(environ.get("TS3_NICKNAME") or "").strip(),
        poll_interval_seconds=optional_int("TS3_POLL_INTERVAL_SEC", 10, minimum=1),
        retry_backoff_seconds=optional_int("TS3_RETRY_BACKOFF_SEC", 5),
        query_timeout_seconds=float(optional_int("TS3_QUERY_TIMEOUT_SEC", 10, minimum=1)),
        max_cycle_failures=optional_int("TS3_MAX_CYCLE_FAILURES", 12),
        log_level=log_level,
    )

    # never log the password
    log.info(
        "config: server=%s sid=%s afk=%r max_idle=%ss ignored=%s grace=%s",
        settings.server_url, settings.server_id, settings.afk_channel_name,
        max_idle_sec, sorted(settings.ignored_channel_names), settings.allow_grace_period,
    )
    return settings
