"""
Fixed-layout little-endian decoders for curve-program events (schema A) and
launchpad instruction payloads (schema B).

Strings are ``u32 length + UTF-8``; addresses are 32 raw bytes rendered as
base58 through solders. Quote-side amounts (lamports) are scaled to SOL at
decode time, base-side amounts stay raw token units.
"""

import datetime as dt
import struct

from solders.pubkey import Pubkey

from launchwatch.classifier import TAG_LEN, Tag
from launchwatch.errors import DecodeError
from launchwatch.models import (
    CompleteEvent,
    CurveParams,
    LaunchpadInitialize,
    LaunchpadSwap,
    MintParams,
    TokenLaunch,
    TradeEvent,
    VestingParams,
)

LAMPORTS_PER_SOL = 1_000_000_000
PUBKEY_LEN = 32
CURVE_PARAMS_LEN = 1 + 8 * 3
VESTING_PARAMS_LEN = 8 * 3


class Reader:
    """Cursor over a payload; every read checks the remaining length."""

    def __init__(self, data: bytes, offset: int = TAG_LEN):
        self.data = data
        self.offset = offset

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def _take(self, n: int, what: str) -> bytes:
        if n > self.remaining:
            raise DecodeError(
                f"{what}: need {n} bytes at offset {self.offset}, have {self.remaining}"
            )
        chunk = self.data[self.offset : self.offset + n]
        self.offset += n
        return chunk

    def _unpack(self, fmt: str, what: str):
        return struct.unpack(fmt, self._take(struct.calcsize(fmt), what))[0]

    def u8(self, what: str = "u8") -> int:
        return self._unpack("<B", what)

    def u32(self, what: str = "u32") -> int:
        return self._unpack("<I", what)

    def u64(self, what: str = "u64") -> int:
        return self._unpack("<Q", what)

    def i64(self, what: str = "i64") -> int:
        return self._unpack("<q", what)

    def boolean(self, what: str = "bool") -> bool:
        return self.u8(what) != 0

    def string(self, what: str = "string") -> str:
        n = self.u32(f"{what} length")
        raw = self._take(n, what)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"{what}: invalid utf-8") from e

    def pubkey(self, what: str = "pubkey") -> str:
        return str(Pubkey.from_bytes(self._take(PUBKEY_LEN, what)))

    def sol(self, what: str) -> float:
        return self.u64(what) / LAMPORTS_PER_SOL

    def unix_time(self, what: str = "timestamp") -> dt.datetime:
        secs = self.i64(what)
        try:
            return dt.datetime.fromtimestamp(secs, tz=dt.timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise DecodeError(f"{what}: {secs} out of range") from e


# ─── Schema A ────────────────────────────────────────────────────────────────
def decode_create(data: bytes, signature: str = "") -> TokenLaunch:
    r = Reader(data)
    return TokenLaunch(
        name=r.string("name"),
        symbol=r.string("symbol"),
        uri=r.string("uri"),
        mint=r.pubkey("mint"),
        bonding_curve=r.pubkey("bonding_curve"),
        creator=r.pubkey("creator"),
        signature=signature,
    )


def decode_trade(data: bytes, signature: str = "") -> TradeEvent:
    r = Reader(data)
    return TradeEvent(
        mint=r.pubkey("mint"),
        sol_amount=r.sol("sol_amount"),
        token_amount=r.u64("token_amount"),
        is_buy=r.boolean("is_buy"),
        user=r.pubkey("user"),
        timestamp=r.unix_time(),
        virtual_sol_reserves=r.sol("virtual_sol_reserves"),
        virtual_token_reserves=r.u64("virtual_token_reserves"),
        real_sol_reserves=r.sol("real_sol_reserves"),
        real_token_reserves=r.u64("real_token_reserves"),
        signature=signature,
    )


def decode_complete(data: bytes, signature: str = "") -> CompleteEvent:
    r = Reader(data)
    return CompleteEvent(
        user=r.pubkey("user"),
        mint=r.pubkey("mint"),
        bonding_curve=r.pubkey("bonding_curve"),
        timestamp=r.unix_time(),
        signature=signature,
    )


# ─── Schema B ────────────────────────────────────────────────────────────────
def decode_initialize(data: bytes, signature: str = "") -> LaunchpadInitialize:
    """MintParams are mandatory; curve and vesting params are read only when
    the rest of the buffer is long enough to hold them."""
    r = Reader(data)
    mint_params = MintParams(
        decimals=r.u8("decimals"),
        name=r.string("name"),
        symbol=r.string("symbol"),
        uri=r.string("uri"),
    )
    curve_params = vesting_params = None
    if r.remaining >= CURVE_PARAMS_LEN:
        curve_params = CurveParams(
            curve_type=r.u8("curve_type"),
            virtual_base=r.u64("virtual_base"),
            virtual_quote=r.u64("virtual_quote"),
            supply=r.u64("supply"),
        )
    if r.remaining >= VESTING_PARAMS_LEN:
        vesting_params = VestingParams(
            start_time=r.u64("start_time"),
            end_time=r.u64("end_time"),
            total_amount=r.u64("total_amount"),
        )
    return LaunchpadInitialize(
        mint_params=mint_params,
        curve_params=curve_params,
        vesting_params=vesting_params,
        signature=signature,
    )


def swap(tag: Tag, signature: str = "") -> LaunchpadSwap:
    return LaunchpadSwap(instruction=tag.value, is_buy=tag.is_buy, signature=signature)


DECODERS = {
    Tag.CREATE: decode_create,
    Tag.TRADE: decode_trade,
    Tag.COMPLETE: decode_complete,
    Tag.INITIALIZE: decode_initialize,
}


def decode(tag: Tag, data: bytes, signature: str = ""):
    if tag.is_swap:
        return swap(tag, signature)
    return DECODERS[tag](data, signature)
