import datetime as dt
from launchwatch.config import settings


def dbg(msg: str) -> None:
    if settings.DEBUG == "verbose":
        ts = dt.datetime.now(dt.timezone.utc).isoformat()
        print(f"[DEBUG] {ts} {msg}")
