"""Governance module transactions (gov v1)."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.errors import ErrorCode, ManifestMCPError
from manifest_mcp.modules import TX, throw_unsupported_subcommand
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.transactions.utils import broadcast, coin, msg
from manifest_mcp.validators import (
    extract_flag,
    filter_consumed_args,
    parse_big_int,
    parse_decimal_weight,
    parse_vote_option,
    require_args,
    validate_args_length,
)


def _weighted_options(raw: str) -> List[Dict[str, Any]]:
    options = []
    for entry in raw.split(","):
        name, _, weight = entry.partition("=")
        if not name or not weight:
            raise ManifestMCPError(
                ErrorCode.TX_FAILED,
                f"Invalid weighted vote format: {entry}. Expected format: option=weight",
                retryable=False,
            )
        options.append({"option": parse_vote_option(name), "weight": parse_decimal_weight(weight)})
    return options


async def route_gov_transaction(
    client: RestSigningClient,
    sender: str,
    subcommand: str,
    args: List[str],
    wait_for_confirmation: bool,
) -> Dict[str, Any]:
    validate_args_length(args, "gov transaction")

    if subcommand == "vote":
        metadata, consumed = extract_flag(args, "--metadata", "gov vote")
        positional = filter_consumed_args(args, consumed)
        require_args(positional, 2, ["proposal-id", "option"], "gov vote")
        message = msg(
            "/cosmos.gov.v1.MsgVote",
            proposalId=str(parse_big_int(positional[0], "proposal-id")),
            voter=sender,
            option=parse_vote_option(positional[1]),
            metadata=metadata or "",
        )
        return await broadcast(client, sender, "gov", "vote", [message], wait_for_confirmation)

    if subcommand == "weighted-vote":
        require_args(args, 2, ["proposal-id", "options"], "gov weighted-vote")
        message = msg(
            "/cosmos.gov.v1.MsgVoteWeighted",
            proposalId=str(parse_big_int(args[0], "proposal-id")),
            voter=sender,
            options=_weighted_options(args[1]),
            metadata="",
        )
        return await broadcast(client, sender, "gov", "weighted-vote", [message], wait_for_confirmation)

    if subcommand == "deposit":
        require_args(args, 2, ["proposal-id", "amount"], "gov deposit")
        message = msg(
            "/cosmos.gov.v1.MsgDeposit",
            proposalId=str(parse_big_int(args[0], "proposal-id")),
            depositor=sender,
            amount=[coin(args[1])],
        )
        return await broadcast(client, sender, "gov", "deposit", [message], wait_for_confirmation)

    throw_unsupported_subcommand(TX, "gov", subcommand)
