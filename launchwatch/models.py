"""
Typed records flowing through the pipeline: decoded payloads, the bonding
curve lifecycle state and the events queued for consumers.
"""

import datetime as dt
from typing import Literal, Union

from pydantic import BaseModel, Field


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class RawNotification(BaseModel):
    """One ``logsNotification`` as delivered by the feed."""

    model_config = {"frozen": True}

    signature: str
    logs: tuple[str, ...] = ()
    slot: int | None = None


# ─── Curve program (schema A) ────────────────────────────────────────────────
class TokenLaunch(BaseModel):
    kind: Literal["launch"] = "launch"
    mint: str
    name: str
    symbol: str
    uri: str
    bonding_curve: str
    creator: str
    timestamp: dt.datetime = Field(default_factory=utcnow)
    signature: str = ""


class TradeEvent(BaseModel):
    kind: Literal["trade"] = "trade"
    mint: str
    sol_amount: float
    token_amount: int
    is_buy: bool
    user: str
    timestamp: dt.datetime
    virtual_sol_reserves: float
    virtual_token_reserves: int
    real_sol_reserves: float
    real_token_reserves: int
    signature: str = ""


class CompleteEvent(BaseModel):
    kind: Literal["completion"] = "completion"
    user: str
    mint: str
    bonding_curve: str
    timestamp: dt.datetime
    signature: str = ""


# ─── Launchpad (schema B) ────────────────────────────────────────────────────
class MintParams(BaseModel):
    decimals: int
    name: str
    symbol: str
    uri: str


class CurveParams(BaseModel):
    curve_type: int
    virtual_base: int
    virtual_quote: int
    supply: int


class VestingParams(BaseModel):
    start_time: int
    end_time: int
    total_amount: int


class LaunchpadInitialize(BaseModel):
    kind: Literal["initialize"] = "initialize"
    mint_params: MintParams
    curve_params: CurveParams | None = None
    vesting_params: VestingParams | None = None
    timestamp: dt.datetime = Field(default_factory=utcnow)
    signature: str = ""


class LaunchpadSwap(BaseModel):
    """Buy/sell instruction; the entity is only known after enrichment."""

    kind: Literal["swap"] = "swap"
    instruction: str
    is_buy: bool
    timestamp: dt.datetime = Field(default_factory=utcnow)
    signature: str = ""


class BuyResolution(BaseModel):
    """Addresses recovered from a buy transaction's account list."""

    kind: Literal["buy"] = "buy"
    signature: str
    buyer: str | None = None
    pool: str | None = None
    mint: str
    quote: str | None = None
    is_new: bool = False
    timestamp: dt.datetime = Field(default_factory=utcnow)


class EnrichmentTask(BaseModel):
    """A pending transaction lookup for a buy whose log lacks the mint."""

    signature: str
    enqueued_at: dt.datetime = Field(default_factory=utcnow)
    retry_count: int = 0


DecodedEvent = Union[TokenLaunch, TradeEvent, CompleteEvent, LaunchpadInitialize, LaunchpadSwap]


# ─── Derived state ───────────────────────────────────────────────────────────
class BondingCurveState(BaseModel):
    mint: str
    name: str | None = None
    symbol: str | None = None

    virtual_sol_reserves: float = 0.0
    virtual_token_reserves: int = 0
    real_sol_reserves: float = 0.0
    real_token_reserves: int = 0

    completion_progress: float = 0.0
    sol_raised_target: float
    is_near_completion: bool = False
    total_trades: int = 0

    created_at: dt.datetime
    last_activity: dt.datetime
    is_active: bool = True
    is_completed: bool = False


class CurveEvent(BaseModel):
    """Tracker output queued for consumers."""

    type: Literal["launch", "trade", "completion", "near_completion"]
    timestamp: dt.datetime
    mint: str
    priority: Literal["high", "normal"] = "normal"
    signature: str = ""
    data: dict = Field(default_factory=dict)
