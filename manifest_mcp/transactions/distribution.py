"""Distribution module transactions."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.modules import TX, throw_unsupported_subcommand
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.transactions.utils import broadcast, coin, msg
from manifest_mcp.validators import require_args, validate_address, validate_args_length


async def route_distribution_transaction(
    client: RestSigningClient,
    sender: str,
    subcommand: str,
    args: List[str],
    wait_for_confirmation: bool,
) -> Dict[str, Any]:
    validate_args_length(args, "distribution transaction")

    if subcommand == "withdraw-rewards":
        require_args(args, 1, ["validator-address"], "distribution withdraw-rewards")
        validate_address(args[0], "validator address")
        message = msg(
            "/cosmos.distribution.v1beta1.MsgWithdrawDelegatorReward",
            delegatorAddress=sender,
            validatorAddress=args[0],
        )
    elif subcommand == "set-withdraw-addr":
        require_args(args, 1, ["withdraw-address"], "distribution set-withdraw-addr")
        validate_address(args[0], "withdraw address")
        message = msg(
            "/cosmos.distribution.v1beta1.MsgSetWithdrawAddress",
            delegatorAddress=sender,
            withdrawAddress=args[0],
        )
    elif subcommand == "fund-community-pool":
        require_args(args, 1, ["amount"], "distribution fund-community-pool")
        message = msg(
            "/cosmos.distribution.v1beta1.MsgFundCommunityPool",
            depositor=sender,
            amount=[coin(args[0])],
        )
    else:
        throw_unsupported_subcommand(TX, "distribution", subcommand)

    return await broadcast(client, sender, "distribution", subcommand, [message], wait_for_confirmation)
