"""Join and exit payloads.

On the wire a join or exit carries ABI-encoded ``userData`` whose first word
is an integer kind. The payload is decoded once, here, into one of a closed
set of request dataclasses; the pool then dispatches on the dataclass type.

Token amounts are raw (native decimals). Share amounts are 18-decimal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from eth_abi import decode, encode  # type: ignore[attr-defined]
from eth_abi.exceptions import DecodingError

from .errors import InvalidUserData, UnhandledExitKind, UnhandledJoinKind


class JoinKind(IntEnum):
    INIT = 0
    EXACT_TOKENS_IN_FOR_BPT_OUT = 1
    TOKEN_IN_FOR_EXACT_BPT_OUT = 2
    ALL_TOKENS_IN_FOR_EXACT_BPT_OUT = 3
    ADD_TOKEN = 4


class ExitKind(IntEnum):
    EXACT_BPT_IN_FOR_ONE_TOKEN_OUT = 0
    EXACT_BPT_IN_FOR_TOKENS_OUT = 1
    BPT_IN_FOR_EXACT_TOKENS_OUT = 2
    REMOVE_TOKEN = 3


# =============================================================================
# Join requests
# =============================================================================


@dataclass(frozen=True)
class InitJoin:
    """First join: seeds real balances and sets virtual balances directly."""

    amounts_in: tuple[int, ...]
    virtual_balances: tuple[int, ...]


@dataclass(frozen=True)
class ExactTokensInForSharesOut:
    amounts_in: tuple[int, ...]
    min_shares_out: int


@dataclass(frozen=True)
class TokenInForExactSharesOut:
    shares_out: int
    token_index: int


@dataclass(frozen=True)
class AllTokensInForExactSharesOut:
    shares_out: int


@dataclass(frozen=True)
class AddToken:
    pass


JoinRequest = (
    InitJoin
    | ExactTokensInForSharesOut
    | TokenInForExactSharesOut
    | AllTokensInForExactSharesOut
    | AddToken
)


# =============================================================================
# Exit requests
# =============================================================================


@dataclass(frozen=True)
class ExactSharesInForOneTokenOut:
    shares_in: int
    token_index: int


@dataclass(frozen=True)
class ExactSharesInForTokensOut:
    shares_in: int


@dataclass(frozen=True)
class SharesInForExactTokensOut:
    amounts_out: tuple[int, ...]
    max_shares_in: int


@dataclass(frozen=True)
class RemoveToken:
    pass


ExitRequest = (
    ExactSharesInForOneTokenOut
    | ExactSharesInForTokensOut
    | SharesInForExactTokensOut
    | RemoveToken
)


# =============================================================================
# Decoding
# =============================================================================


def _as_bytes(user_data: bytes | str) -> bytes:
    if isinstance(user_data, str):
        try:
            return bytes.fromhex(user_data.removeprefix("0x"))
        except ValueError as err:
            raise InvalidUserData(f"User data is not valid hex: {user_data!r}") from err
    return bytes(user_data)


def _decode(types: list[str], data: bytes) -> tuple:
    try:
        return decode(types, data)
    except DecodingError as err:
        raise InvalidUserData(f"Cannot decode user data as {types}: {err}") from err


def _read_kind(data: bytes) -> int:
    if len(data) < 32:
        raise InvalidUserData(f"User data too short: {len(data)} bytes")
    (kind,) = _decode(["uint256"], data[:32])
    return kind


def decode_join(user_data: bytes | str) -> JoinRequest:
    """Decode join userData into a typed request.

    Raises:
        UnhandledJoinKind: If the kind integer is not a JoinKind
        InvalidUserData: If the payload does not match the kind's layout
    """
    data = _as_bytes(user_data)
    raw_kind = _read_kind(data)
    try:
        kind = JoinKind(raw_kind)
    except ValueError as err:
        raise UnhandledJoinKind(f"Unknown join kind {raw_kind}") from err

    if kind is JoinKind.INIT:
        _, amounts_in, virtual_balances = _decode(["uint256", "uint256[]", "uint256[]"], data)
        return InitJoin(tuple(amounts_in), tuple(virtual_balances))
    if kind is JoinKind.EXACT_TOKENS_IN_FOR_BPT_OUT:
        _, amounts_in, min_shares_out = _decode(["uint256", "uint256[]", "uint256"], data)
        return ExactTokensInForSharesOut(tuple(amounts_in), min_shares_out)
    if kind is JoinKind.TOKEN_IN_FOR_EXACT_BPT_OUT:
        _, shares_out, token_index = _decode(["uint256", "uint256", "uint256"], data)
        return TokenInForExactSharesOut(shares_out, token_index)
    if kind is JoinKind.ALL_TOKENS_IN_FOR_EXACT_BPT_OUT:
        _, shares_out = _decode(["uint256", "uint256"], data)
        return AllTokensInForExactSharesOut(shares_out)
    return AddToken()


def decode_exit(user_data: bytes | str) -> ExitRequest:
    """Decode exit userData into a typed request.

    Raises:
        UnhandledExitKind: If the kind integer is not an ExitKind
        InvalidUserData: If the payload does not match the kind's layout
    """
    data = _as_bytes(user_data)
    raw_kind = _read_kind(data)
    try:
        kind = ExitKind(raw_kind)
    except ValueError as err:
        raise UnhandledExitKind(f"Unknown exit kind {raw_kind}") from err

    if kind is ExitKind.EXACT_BPT_IN_FOR_ONE_TOKEN_OUT:
        _, shares_in, token_index = _decode(["uint256", "uint256", "uint256"], data)
        return ExactSharesInForOneTokenOut(shares_in, token_index)
    if kind is ExitKind.EXACT_BPT_IN_FOR_TOKENS_OUT:
        _, shares_in = _decode(["uint256", "uint256"], data)
        return ExactSharesInForTokensOut(shares_in)
    if kind is ExitKind.BPT_IN_FOR_EXACT_TOKENS_OUT:
        _, amounts_out, max_shares_in = _decode(["uint256", "uint256[]", "uint256"], data)
        return SharesInForExactTokensOut(tuple(amounts_out), max_shares_in)
    return RemoveToken()


# =============================================================================
# Encoding
# =============================================================================


def encode_join_init(amounts_in: list[int], virtual_balances: list[int]) -> bytes:
    return encode(
        ["uint256", "uint256[]", "uint256[]"],
        [int(JoinKind.INIT), amounts_in, virtual_balances],
    )


def encode_join_exact_tokens_in_for_bpt_out(amounts_in: list[int], min_bpt_out: int) -> bytes:
    return encode(
        ["uint256", "uint256[]", "uint256"],
        [int(JoinKind.EXACT_TOKENS_IN_FOR_BPT_OUT), amounts_in, min_bpt_out],
    )


def encode_join_token_in_for_exact_bpt_out(bpt_out: int, token_index: int) -> bytes:
    return encode(
        ["uint256", "uint256", "uint256"],
        [int(JoinKind.TOKEN_IN_FOR_EXACT_BPT_OUT), bpt_out, token_index],
    )


def encode_join_all_tokens_in_for_exact_bpt_out(bpt_out: int) -> bytes:
    return encode(["uint256", "uint256"], [int(JoinKind.ALL_TOKENS_IN_FOR_EXACT_BPT_OUT), bpt_out])


def encode_exit_exact_bpt_in_for_one_token_out(bpt_in: int, token_index: int) -> bytes:
    return encode(
        ["uint256", "uint256", "uint256"],
        [int(ExitKind.EXACT_BPT_IN_FOR_ONE_TOKEN_OUT), bpt_in, token_index],
    )


def encode_exit_exact_bpt_in_for_tokens_out(bpt_in: int) -> bytes:
    return encode(["uint256", "uint256"], [int(ExitKind.EXACT_BPT_IN_FOR_TOKENS_OUT), bpt_in])


def encode_exit_bpt_in_for_exact_tokens_out(amounts_out: list[int], max_bpt_in: int) -> bytes:
    return encode(
        ["uint256", "uint256[]", "uint256"],
        [int(ExitKind.BPT_IN_FOR_EXACT_TOKENS_OUT), amounts_out, max_bpt_in],
    )


def encode_join_add_token() -> bytes:
    return encode(["uint256"], [int(JoinKind.ADD_TOKEN)])


def encode_exit_remove_token() -> bytes:
    return encode(["uint256"], [int(ExitKind.REMOVE_TOKEN)])
