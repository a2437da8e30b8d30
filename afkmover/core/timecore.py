from datetime import datetime, timezone

def now_utc_ts():
    # float seconds: join windows are compared against the poll interval
    return datetime.now(timezone.utc).timestamp()

def seconds_to_ms(seconds):
    return int(seconds) * 1000

def fmt_idle(ms):
    seconds = max(0, int(ms)) // 1000
    m, s = divmod(seconds, 60)
    if m > 0:
        return f"{m}m {s}s"
    return f"{s}s"
