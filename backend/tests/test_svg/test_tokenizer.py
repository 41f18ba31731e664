"""Tests for the numeric tokenizer."""

from __future__ import annotations

import pytest

from svgcompact.errors import NumberTokenError
from svgcompact.svg.tokenizer import PathTokenizer, parse_numbers


def test_packed_numbers_split_on_sign_and_second_point():
    assert parse_numbers("10-20.5.5e2") == [10.0, -20.5, 50.0]


def test_exponent_sign_stays_with_number():
    assert parse_numbers("1e-3,2E+2 -4") == [0.001, 200.0, -4.0]


def test_comma_and_whitespace_separators():
    assert parse_numbers(" 1 , 2\n3\t4 ") == [1.0, 2.0, 3.0, 4.0]


def test_malformed_token_is_dropped(ctx):
    assert parse_numbers("1 abc 2", ctx) == [1.0, 2.0]


def test_flags_need_no_separator():
    tokens = PathTokenizer("0110")
    assert tokens.next_flag() == 0
    assert tokens.next_flag() == 1
    assert tokens.next_float() == 10.0
    assert tokens.at_end


def test_bad_flag_raises():
    with pytest.raises(NumberTokenError):
        PathTokenizer("2").next_flag()


def test_exhausted_input_raises_typed_error():
    tokens = PathTokenizer("5 ")
    assert tokens.next_float() == 5.0
    with pytest.raises(NumberTokenError) as exc:
        tokens.next_float()
    assert exc.value.pos == 2
