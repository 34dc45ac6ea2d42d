import base64

import pytest

from launchwatch.classifier import (
    Program,
    Tag,
    classify,
    instruction_tag,
    payload,
    tag_bytes,
)
from launchwatch.errors import DecodeError


def test_classify_curve_tags():
    for tag in (Tag.CREATE, Tag.TRADE, Tag.COMPLETE):
        blob = tag_bytes(Program.CURVE, tag) + b"\x00" * 40
        assert classify(blob, Program.CURVE) is tag


def test_classify_launchpad_tags():
    for tag in (
        Tag.INITIALIZE,
        Tag.BUY_EXACT_IN,
        Tag.SELL_EXACT_IN,
        Tag.BUY_EXACT_OUT,
        Tag.SELL_EXACT_OUT,
    ):
        assert classify(tag_bytes(Program.LAUNCHPAD, tag), Program.LAUNCHPAD) is tag


def test_classify_unknown_or_short():
    assert classify(b"\x01\x02\x03", Program.CURVE) is None
    assert classify(b"\xff" * 16, Program.CURVE) is None
    # the create tag only means something on the curve program
    assert classify(tag_bytes(Program.CURVE, Tag.CREATE), Program.LAUNCHPAD) is None


def test_classify_requires_exact_prefix():
    tag = bytearray(tag_bytes(Program.CURVE, Tag.COMPLETE))
    tag[7] ^= 1
    assert classify(bytes(tag), Program.CURVE) is None


def test_buy_flags():
    assert Tag.BUY_EXACT_IN.is_buy and Tag.BUY_EXACT_OUT.is_buy
    assert not Tag.SELL_EXACT_IN.is_buy
    assert Tag.SELL_EXACT_OUT.is_swap
    assert not Tag.CREATE.is_swap


def test_payload_extraction():
    body = base64.b64encode(b"hello world").decode()
    assert payload(f"Program data: {body}") == b"hello world"
    assert payload("Program log: Instruction: Create") is None
    assert payload("Program 6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P success") is None


def test_payload_bad_base64():
    with pytest.raises(DecodeError):
        payload("Program data: abc")


def test_instruction_tag():
    assert instruction_tag("Program log: Instruction: BuyExactIn") is Tag.BUY_EXACT_IN
    assert instruction_tag("Program log: Instruction: SellExactOut") is Tag.SELL_EXACT_OUT
    assert instruction_tag("Program log: Instruction: Initialize") is None
    assert instruction_tag("Program log: Instruction: Transfer") is None
