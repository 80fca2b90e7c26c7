"""Bank module transactions."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.modules import TX, throw_unsupported_subcommand
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.transactions.utils import broadcast, coin, msg
from manifest_mcp.validators import (
    extract_flag,
    filter_consumed_args,
    parse_colon_pair,
    require_args,
    validate_address,
    validate_args_length,
    validate_memo,
)


async def route_bank_transaction(
    client: RestSigningClient,
    sender: str,
    subcommand: str,
    args: List[str],
    wait_for_confirmation: bool,
) -> Dict[str, Any]:
    validate_args_length(args, "bank transaction")

    if subcommand == "send":
        memo, consumed = extract_flag(args, "--memo", "bank send")
        positional = filter_consumed_args(args, consumed)
        require_args(positional, 2, ["recipient-address", "amount"], "bank send")
        recipient, amount = positional[0], positional[1]
        validate_address(recipient, "recipient address")
        if memo:
            validate_memo(memo)
        message = msg(
            "/cosmos.bank.v1beta1.MsgSend",
            fromAddress=sender,
            toAddress=recipient,
            amount=[coin(amount)],
        )
        return await broadcast(client, sender, "bank", "send", [message], wait_for_confirmation, memo)

    if subcommand == "multi-send":
        require_args(args, 1, ["recipient:amount"], "bank multi-send")
        outputs = []
        totals: Dict[str, int] = {}
        for arg in args:
            address, amount = parse_colon_pair(arg, "address", "amount", "multi-send")
            validate_address(address, "recipient address")
            parsed = coin(amount)
            outputs.append({"address": address, "coins": [parsed]})
            totals[parsed["denom"]] = totals.get(parsed["denom"], 0) + int(parsed["amount"])
        inputs = [{"address": sender, "coins": [{"denom": d, "amount": str(a)} for d, a in totals.items()]}]
        message = msg("/cosmos.bank.v1beta1.MsgMultiSend", inputs=inputs, outputs=outputs)
        return await broadcast(client, sender, "bank", "multi-send", [message], wait_for_confirmation)

    throw_unsupported_subcommand(TX, "bank", subcommand)
