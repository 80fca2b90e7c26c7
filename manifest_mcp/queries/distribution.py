"""Distribution module queries."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.modules import QUERY, throw_unsupported_subcommand
from manifest_mcp.queries.utils import optional_arg, paginate, parse_big_int, require_args, segment

DISTRIBUTION = "/cosmos/distribution/v1beta1"


async def route_distribution_query(client: CosmosApiClient, subcommand: str, args: List[str]) -> Dict[str, Any]:
    if subcommand == "rewards":
        require_args(args, 1, ["delegator-address", "validator-address"], "distribution rewards")
        delegator = segment(args[0])
        validator = optional_arg(args, 1)
        if validator:
            data = await client.get(f"{DISTRIBUTION}/delegators/{delegator}/rewards/{segment(validator)}")
            return {"rewards": data.get("rewards", [])}
        data = await client.get(f"{DISTRIBUTION}/delegators/{delegator}/rewards")
        return {"rewards": data.get("rewards", []), "total": data.get("total", [])}

    if subcommand == "commission":
        require_args(args, 1, ["validator-address"], "distribution commission")
        data = await client.get(f"{DISTRIBUTION}/validators/{segment(args[0])}/commission")
        return {"commission": data.get("commission")}

    if subcommand == "community-pool":
        data = await client.get(f"{DISTRIBUTION}/community_pool")
        return {"pool": data.get("pool", [])}

    if subcommand == "params":
        data = await client.get(f"{DISTRIBUTION}/params")
        return {"params": data.get("params")}

    if subcommand == "validator-outstanding-rewards":
        require_args(args, 1, ["validator-address"], "distribution validator-outstanding-rewards")
        data = await client.get(f"{DISTRIBUTION}/validators/{segment(args[0])}/outstanding_rewards")
        return {"rewards": data.get("rewards")}

    if subcommand == "slashes":
        params, remaining = paginate(args, "distribution slashes")
        require_args(remaining, 1, ["validator-address"], "distribution slashes")
        query: Dict[str, Any] = dict(params)
        start = optional_arg(remaining, 1)
        end = optional_arg(remaining, 2)
        query["starting_height"] = str(parse_big_int(start, "starting-height")) if start else "0"
        if end:
            query["ending_height"] = str(parse_big_int(end, "ending-height"))
        data = await client.get(f"{DISTRIBUTION}/validators/{segment(remaining[0])}/slashes", query)
        return {"slashes": data.get("slashes", []), "pagination": data.get("pagination")}

    if subcommand == "delegator-validators":
        require_args(args, 1, ["delegator-address"], "distribution delegator-validators")
        data = await client.get(f"{DISTRIBUTION}/delegators/{segment(args[0])}/validators")
        return {"validators": data.get("validators", [])}

    if subcommand == "delegator-withdraw-address":
        require_args(args, 1, ["delegator-address"], "distribution delegator-withdraw-address")
        data = await client.get(f"{DISTRIBUTION}/delegators/{segment(args[0])}/withdraw_address")
        return {"withdrawAddress": data.get("withdraw_address")}

    throw_unsupported_subcommand(QUERY, "distribution", subcommand)
