"""Byte-level builders for program log payloads used across the tests."""

import base64
import struct

import base58
from solders.pubkey import Pubkey

from launchwatch.classifier import Program, Tag, tag_bytes


def key() -> Pubkey:
    return Pubkey.new_unique()


def string(text: str) -> bytes:
    raw = text.encode()
    return struct.pack("<I", len(raw)) + raw


def create(name: str, symbol: str, uri: str, mint: Pubkey, curve: Pubkey, creator: Pubkey) -> bytes:
    return (
        tag_bytes(Program.CURVE, Tag.CREATE)
        + string(name)
        + string(symbol)
        + string(uri)
        + bytes(mint)
        + bytes(curve)
        + bytes(creator)
    )


def trade(
    mint: Pubkey,
    user: Pubkey,
    sol_lamports: int = 1_000_000_000,
    tokens: int = 1_000,
    is_buy: bool = True,
    ts: int = 1_700_000_000,
    virtual_sol: int = 30_000_000_000,
    virtual_tokens: int = 1_000_000_000,
    real_sol: int = 0,
    real_tokens: int = 800_000_000,
) -> bytes:
    return (
        tag_bytes(Program.CURVE, Tag.TRADE)
        + bytes(mint)
        + struct.pack("<QQ?", sol_lamports, tokens, is_buy)
        + bytes(user)
        + struct.pack("<qQQQQ", ts, virtual_sol, virtual_tokens, real_sol, real_tokens)
    )


def complete(user: Pubkey, mint: Pubkey, curve: Pubkey, ts: int = 1_700_000_000) -> bytes:
    return (
        tag_bytes(Program.CURVE, Tag.COMPLETE)
        + bytes(user)
        + bytes(mint)
        + bytes(curve)
        + struct.pack("<q", ts)
    )


def initialize(decimals, name, symbol, uri, curve=None, vesting=None) -> bytes:
    out = (
        tag_bytes(Program.LAUNCHPAD, Tag.INITIALIZE)
        + struct.pack("<B", decimals)
        + string(name)
        + string(symbol)
        + string(uri)
    )
    if curve is not None:
        out += struct.pack("<BQQQ", *curve)
    if vesting is not None:
        out += struct.pack("<QQQ", *vesting)
    return out


def program_data(blob: bytes) -> str:
    return "Program data: " + base64.b64encode(blob).decode()


def buy_tx(mint: str, buyer: str, pool: str, quote: str, program_id: str, block_time=None) -> dict:
    """Minimal jsonParsed getTransaction result holding one launchpad buy."""
    accounts = [buyer] + [str(key()) for _ in range(3)] + [pool] + [str(key()) for _ in range(4)]
    accounts += [mint, quote, str(key())]
    data = base58.b58encode(
        tag_bytes(Program.LAUNCHPAD, Tag.BUY_EXACT_IN) + struct.pack("<QQQ", 10, 1, 0)
    ).decode()
    return {
        "blockTime": block_time,
        "meta": {"innerInstructions": []},
        "transaction": {
            "message": {
                "accountKeys": [{"pubkey": buyer, "signer": True, "writable": True}],
                "instructions": [
                    {"programId": program_id, "accounts": accounts, "data": data},
                ],
            }
        },
    }
