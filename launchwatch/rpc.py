"""
RPC helpers for enrichment: full transaction lookup over JSON-RPC, the
startup connectivity check and buy-account resolution on a parsed
transaction.
"""

import asyncio

import base58
import httpx
from solana.rpc.async_api import AsyncClient

from launchwatch.classifier import Program, classify
from launchwatch.config import settings
from launchwatch.debug import dbg
from launchwatch.errors import ConnectError, FetchError, RateLimited

# launchpad buy: fixed account positions inside the instruction
BUYER_IDX, POOL_IDX, MINT_IDX, QUOTE_IDX = 0, 4, 9, 10


def mask_url(url: str) -> str:
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url


async def fetch_transaction(
    signature: str,
    url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict | None:
    """``getTransaction`` (jsonParsed). Returns None while the tx is not visible."""
    url = url or settings.RPC_HTTP
    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "getTransaction",
        "params": [
            signature,
            {
                "encoding": "jsonParsed",
                "commitment": settings.COMMITMENT,
                "maxSupportedTransactionVersion": 0,
            },
        ],
    }
    async with httpx.AsyncClient(timeout=10, transport=transport) as cli:
        dbg(f"RPC getTransaction {mask_url(url)} {signature[:8]}")
        try:
            r = await cli.post(url, json=payload)
        except httpx.HTTPError as e:
            raise FetchError(f"getTransaction {signature[:8]}: {e}") from e
        dbg(f"RPC RESPONSE {r.status_code} {r.text[:200]}")
        if r.status_code == 429:
            raise RateLimited(f"HTTP 429 for {signature[:8]}")
        if r.is_error:
            raise FetchError(f"HTTP {r.status_code} for {signature[:8]}")
        body = r.json()
    err = body.get("error")
    if err:
        if err.get("code") == 429:
            raise RateLimited(err.get("message", "rate limited"))
        raise FetchError(f"RPC error {err.get('code')}: {err.get('message')}")
    return body.get("result")


async def check_connection(url: str | None = None, timeout: float | None = None) -> int:
    """Current slot, or ConnectError if the node does not answer in time."""
    url = url or settings.RPC_HTTP
    timeout = settings.CONNECT_TIMEOUT_SEC if timeout is None else timeout
    try:
        async with AsyncClient(url) as rpc:
            resp = await asyncio.wait_for(rpc.get_slot(), timeout)
    except asyncio.TimeoutError as e:
        raise ConnectError(f"no answer from {mask_url(url)} within {timeout}s") from e
    except Exception as e:
        raise ConnectError(f"cannot reach {mask_url(url)}: {e}") from e
    return resp.value


def _instructions(tx: dict):
    message = (tx.get("transaction") or {}).get("message") or {}
    yield from message.get("instructions") or []
    for inner in (tx.get("meta") or {}).get("innerInstructions") or []:
        yield from inner.get("instructions") or []


def _fee_payer(tx: dict) -> str | None:
    keys = ((tx.get("transaction") or {}).get("message") or {}).get("accountKeys") or []
    if not keys:
        return None
    first = keys[0]
    return first.get("pubkey") if isinstance(first, dict) else first


def resolve_buy_accounts(
    tx: dict,
    program_id: str | None = None,
    authority: str | None = None,
) -> dict | None:
    """buyer / pool / mint / quote of the launchpad buy in ``tx``."""
    program_id = program_id or settings.LAUNCHPAD_PROGRAM
    authority = authority or settings.LAUNCHPAD_AUTHORITY

    for ix in _instructions(tx):
        if ix.get("programId") != program_id:
            continue
        accounts = ix.get("accounts") or []
        try:
            raw = base58.b58decode(ix.get("data") or "")
        except ValueError:
            continue
        tag = classify(raw, Program.LAUNCHPAD)
        if tag is not None and tag.is_buy and len(accounts) > QUOTE_IDX:
            return {
                "buyer": accounts[BUYER_IDX],
                "pool": accounts[POOL_IDX],
                "mint": accounts[MINT_IDX],
                "quote": accounts[QUOTE_IDX],
            }

    # launchpad pays out the bought token through transferChecked
    for ix in _instructions(tx):
        if ix.get("program") != "spl-token":
            continue
        parsed = ix.get("parsed")
        if not isinstance(parsed, dict):
            continue
        info = parsed.get("info") or {}
        if (
            parsed.get("type") == "transferChecked"
            and info.get("authority") == authority
            and info.get("mint")
        ):
            return {"buyer": _fee_payer(tx), "pool": None, "mint": info.get("mint"), "quote": None}
    return None
