# afkmover/core/clientinfo.py
from __future__ import annotations

from afkmover.core.errors import ClientInfoError

IDLE_TIME_KEY = "client_idle_time"


def parse_idle_time_ms(info: dict[str, str]) -> int:
    """
    Pull client_idle_time (milliseconds) out of a parsed clientinfo record.

    Raises ClientInfoError if the field is missing, not an integer, or negative.
    """
    raw = info.get(IDLE_TIME_KEY)
    if raw is None:
        raise ClientInfoError(f"{IDLE_TIME_KEY} missing from clientinfo")

    try:
        value = int(raw.strip())
    except ValueError:
        raise ClientInfoError(f"{IDLE_TIME_KEY} is not an integer: {raw!r}") from None

    if value < 0:
        raise ClientInfoError(f"{IDLE_TIME_KEY} is negative: {value}")
    return value
