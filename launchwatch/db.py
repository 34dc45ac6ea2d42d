"""
Async SQLAlchemy setup for the operational log.
Tables are created automatically on first run (no Alembic needed); until
``init()`` has run, ``log`` only echoes through ``dbg``.
"""

import os
import datetime as dt

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import declarative_base, sessionmaker, mapped_column, Mapped
from sqlalchemy import String, DateTime, Integer
from sqlalchemy.exc import SQLAlchemyError
from launchwatch.config import settings
from launchwatch.debug import dbg

_engine_kw = {"echo": os.getenv("DEBUG") == "verbose"}
if not settings.DB_DSN.startswith("sqlite"):
    _engine_kw.update(pool_size=10, max_overflow=20)

engine = create_async_engine(settings.DB_DSN, **_engine_kw)
async_session = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
Base = declarative_base()
_ready = False


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


# ──────────────────────────────────────────────────────────────────────────────
class LogEntry(Base):
    __tablename__ = "logs"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ts: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow)
    level: Mapped[str] = mapped_column(String(8))
    msg: Mapped[str] = mapped_column(String(512))


# ─────────────────────────── general helpers ──────────────────────────────────
async def init() -> None:
    """Create tables if they do not yet exist."""
    global _ready
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    _ready = True


class session_ctx:
    """Async context‑manager wrapper for a session."""

    def __init__(self):
        self._ctx = async_session()

    async def __aenter__(self):
        return self._ctx

    async def __aexit__(self, *e):
        await self._ctx.close()


# tiny logger ------------------------------------------------------------------
async def log(level: str, msg: str):
    if _ready:
        try:
            async with session_ctx() as s:
                s.add(LogEntry(level=level[:8], msg=msg[:510]))
                await s.commit()
        except SQLAlchemyError as e:
            dbg(f"SQL LOG write failed: {e!r}")
    dbg(f"SQL LOG {level} {msg}")
