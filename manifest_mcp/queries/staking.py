"""Staking module queries."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.modules import QUERY, throw_unsupported_subcommand
from manifest_mcp.queries.utils import optional_arg, paginate, parse_big_int, require_args, segment

STAKING = "/cosmos/staking/v1beta1"


def _page(data: Dict[str, Any], key: str, out_key: str) -> Dict[str, Any]:
    return {out_key: data.get(key, []), "pagination": data.get("pagination")}


async def route_staking_query(client: CosmosApiClient, subcommand: str, args: List[str]) -> Dict[str, Any]:
    if subcommand == "delegation":
        require_args(args, 2, ["delegator-address", "validator-address"], "staking delegation")
        delegator, validator = args[0], args[1]
        data = await client.get(f"{STAKING}/validators/{segment(validator)}/delegations/{segment(delegator)}")
        return {"delegationResponse": data.get("delegation_response")}

    if subcommand == "delegations":
        params, remaining = paginate(args, "staking delegations")
        require_args(remaining, 1, ["delegator-address"], "staking delegations")
        data = await client.get(f"{STAKING}/delegations/{segment(remaining[0])}", params)
        return _page(data, "delegation_responses", "delegationResponses")

    if subcommand == "unbonding-delegation":
        require_args(args, 2, ["delegator-address", "validator-address"], "staking unbonding-delegation")
        delegator, validator = args[0], args[1]
        data = await client.get(
            f"{STAKING}/validators/{segment(validator)}/delegations/{segment(delegator)}/unbonding_delegation"
        )
        return {"unbond": data.get("unbond")}

    if subcommand == "unbonding-delegations":
        params, remaining = paginate(args, "staking unbonding-delegations")
        require_args(remaining, 1, ["delegator-address"], "staking unbonding-delegations")
        data = await client.get(f"{STAKING}/delegators/{segment(remaining[0])}/unbonding_delegations", params)
        return _page(data, "unbonding_responses", "unbondingResponses")

    if subcommand == "redelegations":
        params, remaining = paginate(args, "staking redelegations")
        require_args(remaining, 1, ["delegator-address"], "staking redelegations")
        query: Dict[str, Any] = dict(params)
        src = optional_arg(remaining, 1)
        dst = optional_arg(remaining, 2)
        if src:
            query["src_validator_addr"] = src
        if dst:
            query["dst_validator_addr"] = dst
        data = await client.get(f"{STAKING}/delegators/{segment(remaining[0])}/redelegations", query)
        return _page(data, "redelegation_responses", "redelegationResponses")

    if subcommand == "validator":
        require_args(args, 1, ["validator-address"], "staking validator")
        data = await client.get(f"{STAKING}/validators/{segment(args[0])}")
        return {"validator": data.get("validator")}

    if subcommand == "validators":
        params, remaining = paginate(args, "staking validators")
        query = dict(params)
        status = optional_arg(remaining, 0)
        if status:
            query["status"] = status
        data = await client.get(f"{STAKING}/validators", query)
        return _page(data, "validators", "validators")

    if subcommand == "validator-delegations":
        params, remaining = paginate(args, "staking validator-delegations")
        require_args(remaining, 1, ["validator-address"], "staking validator-delegations")
        data = await client.get(f"{STAKING}/validators/{segment(remaining[0])}/delegations", params)
        return _page(data, "delegation_responses", "delegationResponses")

    if subcommand == "validator-unbonding-delegations":
        params, remaining = paginate(args, "staking validator-unbonding-delegations")
        require_args(remaining, 1, ["validator-address"], "staking validator-unbonding-delegations")
        data = await client.get(f"{STAKING}/validators/{segment(remaining[0])}/unbonding_delegations", params)
        return _page(data, "unbonding_responses", "unbondingResponses")

    if subcommand == "pool":
        data = await client.get(f"{STAKING}/pool")
        return {"pool": data.get("pool")}

    if subcommand == "params":
        data = await client.get(f"{STAKING}/params")
        return {"params": data.get("params")}

    if subcommand == "historical-info":
        require_args(args, 1, ["height"], "staking historical-info")
        height = parse_big_int(args[0], "height")
        data = await client.get(f"{STAKING}/historical_info/{height}")
        return {"hist": data.get("hist")}

    throw_unsupported_subcommand(QUERY, "staking", subcommand)
