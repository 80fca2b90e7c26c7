"""Helpers shared by the transaction handlers."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from manifest_mcp.cosmos import build_tx_result
from manifest_mcp.modules import TX, get_subcommand_usage
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.validators import parse_amount

Message = Dict[str, Any]


def msg(type_url: str, **value: Any) -> Message:
    """Build a ``{"typeUrl", "value"}`` message for the signer to encode."""
    return {"typeUrl": type_url, "value": value}


def coin(value: str) -> Dict[str, str]:
    parsed = parse_amount(value)
    return {"denom": parsed["denom"], "amount": parsed["amount"]}


def usage_hint(module: str, subcommand: str, fallback: str = "<args>") -> str:
    return f"Usage: {subcommand} {get_subcommand_usage(TX, module, subcommand) or fallback}"


async def broadcast(
    client: RestSigningClient,
    sender: str,
    module: str,
    subcommand: str,
    messages: List[Message],
    wait_for_confirmation: bool,
    memo: Optional[str] = None,
) -> Dict[str, Any]:
    response = await client.sign_and_broadcast(sender, messages, "auto", memo or "")
    return build_tx_result(module, subcommand, response, wait_for_confirmation)
