"""Shared argument validation helpers for Manifest query and transaction handlers.

Every helper takes raw string tokens as received from the tool layer and either
returns a typed value or raises ``ManifestMCPError`` naming the offending field.
Validation errors are always permanent (``retryable=False``); they are raised
before any network access.
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import bech32

from manifest_mcp.errors import ErrorCode, ManifestMCPError

MAX_MEMO_LENGTH = 256
MAX_ARGS = 100
MAX_META_HASH_BYTES = 64
DEFAULT_PAGE_LIMIT = 100
MAX_PAGE_LIMIT = 1000

# <digits><denom>; denoms may be hierarchical (factory/.../upwr, ibc/HASH) or use underscores.
AMOUNT_REGEX = re.compile(r"^([0-9]+)([a-zA-Z][a-zA-Z0-9/_]*)$")
BIG_INT_REGEX = re.compile(r"^-?[0-9]+$")
HEX_REGEX = re.compile(r"^[0-9a-fA-F]*$")
DIGITS_REGEX = re.compile(r"^[0-9]+$")
DECIMAL_STRING_REGEX = re.compile(r"^[0-9]+(\.[0-9]+)?$")

AMOUNT_EXAMPLE = "1000000umfx"

VOTE_OPTIONS: Dict[str, int] = {
    "yes": 1,
    "1": 1,
    "abstain": 2,
    "2": 2,
    "no": 3,
    "3": 3,
    "no_with_veto": 4,
    "nowithveto": 4,
    "4": 4,
}

WEIGHT_PRECISION = Decimal(10) ** 18


def _fail(code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None) -> ManifestMCPError:
    return ManifestMCPError(code, message, details, retryable=False)


def parse_big_int(value: str, field_name: str, code: ErrorCode = ErrorCode.TX_FAILED) -> int:
    """Strict decimal integer; empty input is an error, never zero."""
    if value is None or not str(value).strip():
        raise _fail(code, f"Invalid {field_name}: empty value. Expected a valid integer.")
    text = str(value).strip()
    if not BIG_INT_REGEX.fullmatch(text):
        raise _fail(code, f'Invalid {field_name}: "{value}". Expected a valid integer.')
    return int(text)


def parse_integer(value: str, field_name: str, code: ErrorCode = ErrorCode.QUERY_FAILED) -> int:
    return parse_big_int(value, field_name, code)


def _amount_hint(value: str) -> str:
    if not value:
        return "Received empty string."
    if " " in value:
        return 'Remove the space between number and denomination (e.g., "1000umfx" not "1000 umfx").'
    if "," in value:
        return 'Do not use commas in amounts (e.g., "1000000umfx" not "1,000,000umfx").'
    if DIGITS_REGEX.fullmatch(value):
        return f'Missing denomination. Add a denom after the number (e.g., "{value}umfx").'
    if value[0].isalpha():
        return 'Amount must start with a number, followed by the denomination (e.g., "1000umfx").'
    return ""


def parse_amount(value: str, code: ErrorCode = ErrorCode.TX_FAILED) -> Dict[str, str]:
    """Parse ``<digits><denom>`` into a coin dict ``{"amount", "denom"}``."""
    match = AMOUNT_REGEX.fullmatch(value or "")
    if match is None:
        hint = _amount_hint(value or "")
        message = (
            f'Invalid amount format: "{value}". Expected format: <number><denom> '
            f'(e.g., "{AMOUNT_EXAMPLE}").'
        )
        if hint:
            message = f"{message} {hint}"
        raise _fail(
            code,
            message,
            {
                "receivedValue": value,
                "expectedFormat": "<number><denom>",
                "example": AMOUNT_EXAMPLE,
            },
        )
    return {"amount": match.group(1), "denom": match.group(2)}


def decode_address(address: str) -> Tuple[Optional[str], Optional[bytes]]:
    """Decode a bech32 address into ``(prefix, payload)``; ``(None, None)`` when invalid."""
    decoded = bech32.bech32_decode(address)
    hrp, data = decoded[0], decoded[1]
    if hrp is None or data is None:
        return None, None
    payload = bech32.convertbits(data, 5, 8, False)
    if payload is None or not payload:
        return None, None
    return hrp, bytes(payload)


def encode_address(prefix: str, payload: bytes) -> str:
    return bech32.bech32_encode(prefix, bech32.convertbits(list(payload), 8, 5))


def validate_address(
    address: str,
    field_name: str,
    expected_prefix: Optional[str] = None,
) -> None:
    if not address or not address.strip():
        raise _fail(ErrorCode.INVALID_ADDRESS, f"Invalid {field_name}: address is empty.")

    prefix, _ = decode_address(address)
    if prefix is None:
        raise _fail(
            ErrorCode.INVALID_ADDRESS,
            f'Invalid {field_name}: "{address}". Expected a valid bech32 address.',
            {"address": address},
        )
    if expected_prefix is not None and prefix != expected_prefix:
        raise _fail(
            ErrorCode.INVALID_ADDRESS,
            f'Invalid {field_name}: expected prefix "{expected_prefix}" but got "{prefix}".',
            {"address": address, "expectedPrefix": expected_prefix, "actualPrefix": prefix},
        )


def validate_memo(memo: str, code: ErrorCode = ErrorCode.TX_FAILED) -> None:
    if len(memo) > MAX_MEMO_LENGTH:
        raise _fail(code, f"Memo too long: {len(memo)} characters (max {MAX_MEMO_LENGTH}).")


def validate_args_length(args: Sequence[str], context: str, code: ErrorCode = ErrorCode.TX_FAILED) -> None:
    if len(args) > MAX_ARGS:
        raise _fail(code, f"Too many arguments for {context}: {len(args)} (max {MAX_ARGS}).")


def require_args(
    args: Sequence[str],
    min_count: int,
    expected_names: Sequence[str],
    context: str,
    code: ErrorCode = ErrorCode.TX_FAILED,
) -> None:
    """Fail unless at least ``min_count`` positional arguments were given."""
    if len(args) >= min_count:
        return
    expected = list(expected_names[:min_count])
    received = ", ".join(f'"{arg}"' for arg in args) if args else "none"
    raise _fail(
        code,
        f"{context} requires {min_count} argument(s): {', '.join(expected)}. "
        f"Received {len(args)}: {received}.",
        {
            "expectedArgs": expected,
            "receivedArgs": list(args),
            "receivedCount": len(args),
            "requiredCount": min_count,
        },
    )


def parse_colon_pair(
    value: str,
    left_name: str,
    right_name: str,
    context: str,
    code: ErrorCode = ErrorCode.TX_FAILED,
) -> Tuple[str, str]:
    """Split ``left:right`` on the first colon only."""
    expected = f"Expected {left_name}:{right_name}."
    left, sep, right = value.partition(":")
    if not sep:
        raise _fail(code, f'Invalid format in {context}: "{value}". {expected}')
    if not left:
        raise _fail(code, f'Invalid format in {context}: Missing {left_name} in "{value}". {expected}')
    if not right:
        raise _fail(code, f'Invalid format in {context}: Missing {right_name} in "{value}". {expected}')
    return left, right


def parse_hex_bytes(
    value: str,
    field_name: str,
    max_bytes: int,
    code: ErrorCode = ErrorCode.TX_FAILED,
) -> bytes:
    if not value or not value.strip():
        raise _fail(code, f"Invalid {field_name}: empty hex string.")
    if not HEX_REGEX.fullmatch(value):
        raise _fail(code, f'Invalid {field_name}: "{value}" contains non-hex characters.')
    if len(value) % 2 != 0:
        raise _fail(
            code,
            f"Invalid {field_name}: hex string must have even length. Got {len(value)} characters.",
        )
    byte_length = len(value) // 2
    if byte_length > max_bytes:
        raise _fail(
            code,
            f"Invalid {field_name}: exceeds maximum {max_bytes} bytes. "
            f"Got {byte_length} bytes ({len(value)} hex chars).",
        )
    return bytes.fromhex(value)


def bytes_to_hex(data: bytes) -> str:
    return bytes(data).hex()


def extract_flag(
    args: Sequence[str],
    flag: str,
    context: str,
    code: ErrorCode = ErrorCode.TX_FAILED,
) -> Tuple[Optional[str], List[int]]:
    """
    Find ``flag`` and the value after it.

    Returns ``(value, consumed_indices)``; ``(None, [])`` when the flag is
    absent. A flag with no value, or followed by another ``--flag``, is an
    error.
    """
    try:
        index = list(args).index(flag)
    except ValueError:
        return None, []
    if index + 1 >= len(args) or args[index + 1].startswith("--"):
        raise _fail(code, f"{flag} flag requires a value in {context}.")
    return args[index + 1], [index, index + 1]


def filter_consumed_args(args: Sequence[str], consumed: Iterable[int]) -> List[str]:
    skip = set(consumed)
    return [arg for index, arg in enumerate(args) if index not in skip]


def extract_boolean_flag(args: Sequence[str], flag: str) -> Tuple[bool, List[str]]:
    """Remove the first occurrence of a valueless ``flag``; report whether it was present."""
    remaining = list(args)
    if flag not in remaining:
        return False, remaining
    remaining.remove(flag)
    return True, remaining


def parse_boolean_string(value: str, field_name: str, code: ErrorCode = ErrorCode.TX_FAILED) -> bool:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise _fail(code, f'Invalid {field_name}: "{value}". Expected "true" or "false".')


def parse_vote_option(value: str, code: ErrorCode = ErrorCode.TX_FAILED) -> int:
    option = VOTE_OPTIONS.get(value.lower())
    if option is None:
        raise _fail(
            code,
            f"Invalid vote option: {value}. Expected: yes, no, abstain, or no_with_veto",
        )
    return option


def parse_decimal_weight(value: str, code: ErrorCode = ErrorCode.TX_FAILED) -> str:
    """Convert a decimal weight in [0, 1] to its 18-decimal fixed-point string."""
    if not DECIMAL_STRING_REGEX.fullmatch(value or ""):
        raise _fail(code, f'Invalid weight: "{value}". Expected a decimal between 0 and 1.')
    try:
        weight = Decimal(value)
    except InvalidOperation as exc:
        raise _fail(code, f'Invalid weight: "{value}". Expected a decimal between 0 and 1.') from exc
    if weight > 1:
        raise _fail(code, f'Invalid weight: "{value}". Expected a decimal between 0 and 1.')
    return str(int(weight * WEIGHT_PRECISION))


@dataclass(frozen=True, slots=True)
class PaginationCursor:
    """Cosmos SDK page request parameters."""

    limit: int = DEFAULT_PAGE_LIMIT
    offset: int = 0
    key: bytes = b""
    count_total: bool = False
    reverse: bool = False

    def to_params(self) -> Dict[str, str]:
        params = {"pagination.limit": str(self.limit)}
        if self.offset:
            params["pagination.offset"] = str(self.offset)
        if self.key:
            params["pagination.key"] = base64.b64encode(self.key).decode("ascii")
        if self.count_total:
            params["pagination.count_total"] = "true"
        if self.reverse:
            params["pagination.reverse"] = "true"
        return params


def extract_pagination_args(
    args: Sequence[str],
    context: str,
    code: ErrorCode = ErrorCode.QUERY_FAILED,
) -> Tuple[PaginationCursor, List[str]]:
    """
    Pull an optional ``--limit N`` out of ``args``.

    An absent flag yields the default page size. An explicit value outside
    ``[1, MAX_PAGE_LIMIT]`` is rejected rather than clamped.
    """
    raw_limit, consumed = extract_flag(args, "--limit", context, code)
    remaining = filter_consumed_args(args, consumed)
    if raw_limit is None:
        return PaginationCursor(), remaining
    limit = parse_big_int(raw_limit, "limit", code)
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        raise _fail(code, f"Invalid limit: {limit}. Must be between 1 and {MAX_PAGE_LIMIT}.")
    return PaginationCursor(limit=limit), remaining
