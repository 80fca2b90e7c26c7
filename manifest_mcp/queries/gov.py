"""Governance module queries (gov v1)."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.modules import QUERY, throw_unsupported_subcommand
from manifest_mcp.queries.utils import optional_arg, paginate, parse_big_int, require_args, segment

GOV = "/cosmos/gov/v1"


async def route_gov_query(client: CosmosApiClient, subcommand: str, args: List[str]) -> Dict[str, Any]:
    if subcommand == "proposal":
        require_args(args, 1, ["proposal-id"], "gov proposal")
        proposal_id = parse_big_int(args[0], "proposal-id")
        data = await client.get(f"{GOV}/proposals/{proposal_id}")
        return {"proposal": data.get("proposal")}

    if subcommand == "proposals":
        params, remaining = paginate(args, "gov proposals")
        query: Dict[str, Any] = dict(params)
        # All optional, positional: status, voter, depositor.
        status = optional_arg(remaining, 0)
        if status:
            query["proposal_status"] = str(parse_big_int(status, "status"))
        voter = optional_arg(remaining, 1)
        if voter:
            query["voter"] = voter
        depositor = optional_arg(remaining, 2)
        if depositor:
            query["depositor"] = depositor
        data = await client.get(f"{GOV}/proposals", query)
        return {"proposals": data.get("proposals", []), "pagination": data.get("pagination")}

    if subcommand == "vote":
        require_args(args, 2, ["proposal-id", "voter-address"], "gov vote")
        proposal_id = parse_big_int(args[0], "proposal-id")
        data = await client.get(f"{GOV}/proposals/{proposal_id}/votes/{segment(args[1])}")
        return {"vote": data.get("vote")}

    if subcommand == "votes":
        params, remaining = paginate(args, "gov votes")
        require_args(remaining, 1, ["proposal-id"], "gov votes")
        proposal_id = parse_big_int(remaining[0], "proposal-id")
        data = await client.get(f"{GOV}/proposals/{proposal_id}/votes", params)
        return {"votes": data.get("votes", []), "pagination": data.get("pagination")}

    if subcommand == "deposit":
        require_args(args, 2, ["proposal-id", "depositor-address"], "gov deposit")
        proposal_id = parse_big_int(args[0], "proposal-id")
        data = await client.get(f"{GOV}/proposals/{proposal_id}/deposits/{segment(args[1])}")
        return {"deposit": data.get("deposit")}

    if subcommand == "deposits":
        params, remaining = paginate(args, "gov deposits")
        require_args(remaining, 1, ["proposal-id"], "gov deposits")
        proposal_id = parse_big_int(remaining[0], "proposal-id")
        data = await client.get(f"{GOV}/proposals/{proposal_id}/deposits", params)
        return {"deposits": data.get("deposits", []), "pagination": data.get("pagination")}

    if subcommand == "tally":
        require_args(args, 1, ["proposal-id"], "gov tally")
        proposal_id = parse_big_int(args[0], "proposal-id")
        data = await client.get(f"{GOV}/proposals/{proposal_id}/tally")
        return {"tally": data.get("tally")}

    if subcommand == "params":
        params_type = optional_arg(args, 0) or "tallying"
        data = await client.get(f"{GOV}/params/{segment(params_type)}")
        return {
            "votingParams": data.get("voting_params"),
            "depositParams": data.get("deposit_params"),
            "tallyParams": data.get("tally_params"),
            "params": data.get("params"),
        }

    throw_unsupported_subcommand(QUERY, "gov", subcommand)
