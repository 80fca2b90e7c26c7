"""Staking module transactions."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.modules import TX, throw_unsupported_subcommand
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.transactions.utils import broadcast, coin, msg
from manifest_mcp.validators import require_args, validate_address, validate_args_length


async def route_staking_transaction(
    client: RestSigningClient,
    sender: str,
    subcommand: str,
    args: List[str],
    wait_for_confirmation: bool,
) -> Dict[str, Any]:
    validate_args_length(args, "staking transaction")

    if subcommand == "delegate":
        require_args(args, 2, ["validator-address", "amount"], "staking delegate")
        validate_address(args[0], "validator address")
        message = msg(
            "/cosmos.staking.v1beta1.MsgDelegate",
            delegatorAddress=sender,
            validatorAddress=args[0],
            amount=coin(args[1]),
        )
        return await broadcast(client, sender, "staking", "delegate", [message], wait_for_confirmation)

    if subcommand in ("unbond", "undelegate"):
        require_args(args, 2, ["validator-address", "amount"], f"staking {subcommand}")
        validate_address(args[0], "validator address")
        message = msg(
            "/cosmos.staking.v1beta1.MsgUndelegate",
            delegatorAddress=sender,
            validatorAddress=args[0],
            amount=coin(args[1]),
        )
        return await broadcast(client, sender, "staking", "unbond", [message], wait_for_confirmation)

    if subcommand == "redelegate":
        require_args(
            args,
            3,
            ["src-validator-address", "dst-validator-address", "amount"],
            "staking redelegate",
        )
        validate_address(args[0], "source validator address")
        validate_address(args[1], "destination validator address")
        message = msg(
            "/cosmos.staking.v1beta1.MsgBeginRedelegate",
            delegatorAddress=sender,
            validatorSrcAddress=args[0],
            validatorDstAddress=args[1],
            amount=coin(args[2]),
        )
        return await broadcast(client, sender, "staking", "redelegate", [message], wait_for_confirmation)

    throw_unsupported_subcommand(TX, "staking", subcommand)
