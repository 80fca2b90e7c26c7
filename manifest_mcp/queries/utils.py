"""Query-side wrappers: the shared validators with ``QUERY_FAILED`` as their error kind."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from manifest_mcp import validators
from manifest_mcp.cosmos_api import encode_path_segment
from manifest_mcp.errors import ErrorCode

QUERY_CODE = ErrorCode.QUERY_FAILED

segment = encode_path_segment


def require_args(args: Sequence[str], min_count: int, expected_names: Sequence[str], context: str) -> None:
    validators.require_args(args, min_count, expected_names, context, QUERY_CODE)


def parse_big_int(value: str, field_name: str) -> int:
    return validators.parse_integer(value, field_name)


def paginate(args: Sequence[str], context: str) -> Tuple[Dict[str, str], List[str]]:
    """Strip ``--limit`` from ``args`` and return node pagination params plus what is left."""
    cursor, remaining = validators.extract_pagination_args(args, context, QUERY_CODE)
    return cursor.to_params(), remaining


def optional_arg(args: Sequence[str], index: int) -> Optional[str]:
    return args[index] if len(args) > index and args[index] else None
