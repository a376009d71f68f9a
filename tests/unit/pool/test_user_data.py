"""Tests for join/exit payload decoding.

Payloads are ABI-encoded with a leading kind integer; decoding turns them
into typed requests or fails with a reason-coded error.
"""

import pytest
from eth_abi import encode  # type: ignore[attr-defined]

from rangepool.pool.errors import InvalidUserData, UnhandledExitKind, UnhandledJoinKind
from rangepool.pool.user_data import (
    AddToken,
    AllTokensInForExactSharesOut,
    ExactSharesInForOneTokenOut,
    ExactSharesInForTokensOut,
    ExactTokensInForSharesOut,
    ExitKind,
    InitJoin,
    JoinKind,
    RemoveToken,
    SharesInForExactTokensOut,
    TokenInForExactSharesOut,
    decode_exit,
    decode_join,
    encode_exit_bpt_in_for_exact_tokens_out,
    encode_exit_exact_bpt_in_for_one_token_out,
    encode_exit_exact_bpt_in_for_tokens_out,
    encode_exit_remove_token,
    encode_join_add_token,
    encode_join_all_tokens_in_for_exact_bpt_out,
    encode_join_exact_tokens_in_for_bpt_out,
    encode_join_init,
    encode_join_token_in_for_exact_bpt_out,
)


class TestKindNumbering:
    """Kind integers are positional and must not shift."""

    def test_join_kinds(self) -> None:
        assert [k.value for k in JoinKind] == [0, 1, 2, 3, 4]
        assert JoinKind.INIT == 0
        assert JoinKind.ADD_TOKEN == 4

    def test_exit_kinds(self) -> None:
        assert [k.value for k in ExitKind] == [0, 1, 2, 3]
        assert ExitKind.EXACT_BPT_IN_FOR_ONE_TOKEN_OUT == 0
        assert ExitKind.REMOVE_TOKEN == 3


class TestDecodeJoin:
    def test_init(self) -> None:
        data = encode_join_init([10**17, 2 * 10**17], [2 * 10**17, 4 * 10**17])
        assert decode_join(data) == InitJoin((10**17, 2 * 10**17), (2 * 10**17, 4 * 10**17))

    def test_exact_tokens_in(self) -> None:
        data = encode_join_exact_tokens_in_for_bpt_out([5, 7], 3)
        assert decode_join(data) == ExactTokensInForSharesOut((5, 7), 3)

    def test_token_in_for_exact_shares_out(self) -> None:
        data = encode_join_token_in_for_exact_bpt_out(100, 1)
        assert decode_join(data) == TokenInForExactSharesOut(100, 1)

    def test_all_tokens_in(self) -> None:
        data = encode_join_all_tokens_in_for_exact_bpt_out(42)
        assert decode_join(data) == AllTokensInForExactSharesOut(42)

    def test_add_token(self) -> None:
        assert decode_join(encode_join_add_token()) == AddToken()

    def test_hex_string_input(self) -> None:
        data = encode_join_all_tokens_in_for_exact_bpt_out(42)
        assert decode_join("0x" + data.hex()) == AllTokensInForExactSharesOut(42)

    def test_unknown_kind(self) -> None:
        with pytest.raises(UnhandledJoinKind):
            decode_join(encode(["uint256"], [5]))

    def test_too_short(self) -> None:
        with pytest.raises(InvalidUserData):
            decode_join(b"\x00" * 31)

    def test_truncated_body(self) -> None:
        """Kind says ExactTokensIn but the body is missing."""
        with pytest.raises(InvalidUserData):
            decode_join(encode(["uint256"], [int(JoinKind.EXACT_TOKENS_IN_FOR_BPT_OUT)]))

    def test_invalid_hex(self) -> None:
        with pytest.raises(InvalidUserData):
            decode_join("0xnothex")


class TestDecodeExit:
    def test_exact_shares_in_for_one_token_out(self) -> None:
        data = encode_exit_exact_bpt_in_for_one_token_out(10, 0)
        assert decode_exit(data) == ExactSharesInForOneTokenOut(10, 0)

    def test_exact_shares_in_for_tokens_out(self) -> None:
        data = encode_exit_exact_bpt_in_for_tokens_out(10)
        assert decode_exit(data) == ExactSharesInForTokensOut(10)

    def test_shares_in_for_exact_tokens_out(self) -> None:
        data = encode_exit_bpt_in_for_exact_tokens_out([1, 2, 3], 99)
        assert decode_exit(data) == SharesInForExactTokensOut((1, 2, 3), 99)

    def test_remove_token(self) -> None:
        assert decode_exit(encode_exit_remove_token()) == RemoveToken()

    def test_unknown_kind(self) -> None:
        with pytest.raises(UnhandledExitKind):
            decode_exit(encode(["uint256"], [4]))

    def test_join_payload_is_not_an_exit(self) -> None:
        """Kind 4 is a valid join kind but not a valid exit kind."""
        with pytest.raises(UnhandledExitKind):
            decode_exit(encode_join_add_token())
