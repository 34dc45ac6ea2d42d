"""
Routes raw program-log payloads to a schema by their 8-byte Anchor
discriminator. Unknown tags are expected (the feed carries every event the
programs emit) and come back as ``None``.
"""

import base64
import binascii
import enum
import re

from launchwatch.errors import DecodeError

TAG_LEN = 8
DATA_MARKER = "Program data: "
_DATA_RE = re.compile(r"Program data: ([A-Za-z0-9+/=]+)")
_INSTRUCTION_RE = re.compile(r"Program log: Instruction: (\w+)")


class Program(str, enum.Enum):
    CURVE = "pump"
    LAUNCHPAD = "launchpad"


class Tag(str, enum.Enum):
    CREATE = "create"
    TRADE = "trade"
    COMPLETE = "complete"
    INITIALIZE = "initialize"
    BUY_EXACT_IN = "buy_exact_in"
    SELL_EXACT_IN = "sell_exact_in"
    BUY_EXACT_OUT = "buy_exact_out"
    SELL_EXACT_OUT = "sell_exact_out"

    @property
    def is_buy(self) -> bool:
        return self in (Tag.BUY_EXACT_IN, Tag.BUY_EXACT_OUT)

    @property
    def is_swap(self) -> bool:
        return self in SWAP_TAGS


SWAP_TAGS = frozenset(
    {Tag.BUY_EXACT_IN, Tag.SELL_EXACT_IN, Tag.BUY_EXACT_OUT, Tag.SELL_EXACT_OUT}
)

REGISTRY: dict[Program, dict[bytes, Tag]] = {
    Program.CURVE: {
        bytes([27, 114, 169, 77, 222, 235, 99, 118]): Tag.CREATE,
        bytes([189, 219, 127, 211, 78, 230, 97, 238]): Tag.TRADE,
        bytes([95, 114, 97, 156, 212, 46, 152, 8]): Tag.COMPLETE,
    },
    Program.LAUNCHPAD: {
        bytes([175, 175, 109, 31, 13, 152, 155, 237]): Tag.INITIALIZE,
        bytes([250, 234, 13, 123, 213, 156, 19, 236]): Tag.BUY_EXACT_IN,
        bytes([149, 39, 222, 155, 211, 124, 152, 26]): Tag.SELL_EXACT_IN,
        bytes([24, 211, 116, 40, 105, 3, 153, 56]): Tag.BUY_EXACT_OUT,
        bytes([95, 200, 71, 34, 8, 9, 11, 166]): Tag.SELL_EXACT_OUT,
    },
}

# Anchor logs the instruction name in CamelCase
INSTRUCTION_NAMES = {
    "Initialize": Tag.INITIALIZE,
    "BuyExactIn": Tag.BUY_EXACT_IN,
    "SellExactIn": Tag.SELL_EXACT_IN,
    "BuyExactOut": Tag.BUY_EXACT_OUT,
    "SellExactOut": Tag.SELL_EXACT_OUT,
}


def tag_bytes(program: Program, tag: Tag) -> bytes:
    for raw, t in REGISTRY[program].items():
        if t is tag:
            return raw
    raise KeyError(f"{tag.value} is not registered for {program.value}")


def classify(blob: bytes, program: Program) -> Tag | None:
    """Exact prefix match against the program's tag table."""
    if len(blob) < TAG_LEN:
        return None
    return REGISTRY[program].get(bytes(blob[:TAG_LEN]))


def payload(line: str) -> bytes | None:
    """Decode the base64 body of a ``Program data:`` line, if any."""
    if DATA_MARKER not in line:
        return None
    m = _DATA_RE.search(line)
    if m is None:
        return None
    try:
        return base64.b64decode(m.group(1), validate=True)
    except binascii.Error as e:
        raise DecodeError(f"bad base64 payload: {e}") from e


def instruction_tag(line: str) -> Tag | None:
    """Launchpad swap named by an ``Instruction:`` log line."""
    m = _INSTRUCTION_RE.search(line)
    if m is None:
        return None
    tag = INSTRUCTION_NAMES.get(m.group(1))
    return tag if tag in SWAP_TAGS else None
