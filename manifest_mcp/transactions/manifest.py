"""Manifest module transactions (authority-gated payouts and burns)."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.modules import TX, throw_unsupported_subcommand
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.transactions.utils import broadcast, coin, msg
from manifest_mcp.validators import parse_colon_pair, require_args, validate_address, validate_args_length


async def route_manifest_transaction(
    client: RestSigningClient,
    sender: str,
    subcommand: str,
    args: List[str],
    wait_for_confirmation: bool,
) -> Dict[str, Any]:
    validate_args_length(args, "manifest transaction")

    if subcommand == "payout":
        require_args(args, 1, ["address:amount"], "manifest payout")
        pairs = []
        for arg in args:
            address, amount = parse_colon_pair(arg, "address", "amount", "payout pair")
            validate_address(address, "payout recipient address")
            pairs.append({"address": address, "coin": coin(amount)})
        message = msg("/liftedinit.manifest.v1.MsgPayout", authority=sender, payoutPairs=pairs)
        return await broadcast(client, sender, "manifest", "payout", [message], wait_for_confirmation)

    if subcommand == "burn-held-balance":
        require_args(args, 1, ["amount"], "manifest burn-held-balance")
        message = msg(
            "/liftedinit.manifest.v1.MsgBurnHeldBalance",
            authority=sender,
            burnCoins=[coin(arg) for arg in args],
        )
        return await broadcast(client, sender, "manifest", "burn-held-balance", [message], wait_for_confirmation)

    throw_unsupported_subcommand(TX, "manifest", subcommand)
