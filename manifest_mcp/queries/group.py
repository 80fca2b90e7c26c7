"""Group module queries."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.modules import QUERY, throw_unsupported_subcommand
from manifest_mcp.queries.utils import paginate, parse_big_int, require_args, segment
from manifest_mcp.validators import validate_address

GROUP = "/cosmos/group/v1"


def _address(value: str, field_name: str) -> str:
    validate_address(value, field_name)
    return segment(value)


async def route_group_query(client: CosmosApiClient, subcommand: str, args: List[str]) -> Dict[str, Any]:
    if subcommand == "group-info":
        require_args(args, 1, ["group-id"], "group group-info")
        group_id = parse_big_int(args[0], "group-id")
        data = await client.get(f"{GROUP}/group_info/{group_id}")
        return {"info": data.get("info")}

    if subcommand == "group-policy-info":
        require_args(args, 1, ["group-policy-address"], "group group-policy-info")
        data = await client.get(f"{GROUP}/group_policy_info/{_address(args[0], 'group-policy-address')}")
        return {"info": data.get("info")}

    if subcommand == "group-members":
        params, remaining = paginate(args, "group group-members")
        require_args(remaining, 1, ["group-id"], "group group-members")
        group_id = parse_big_int(remaining[0], "group-id")
        data = await client.get(f"{GROUP}/group_members/{group_id}", params)
        return {"members": data.get("members", []), "pagination": data.get("pagination")}

    if subcommand == "groups-by-admin":
        params, remaining = paginate(args, "group groups-by-admin")
        require_args(remaining, 1, ["admin-address"], "group groups-by-admin")
        data = await client.get(f"{GROUP}/groups_by_admin/{_address(remaining[0], 'admin-address')}", params)
        return {"groups": data.get("groups", []), "pagination": data.get("pagination")}

    if subcommand == "group-policies-by-group":
        params, remaining = paginate(args, "group group-policies-by-group")
        require_args(remaining, 1, ["group-id"], "group group-policies-by-group")
        group_id = parse_big_int(remaining[0], "group-id")
        data = await client.get(f"{GROUP}/group_policies_by_group/{group_id}", params)
        return {"groupPolicies": data.get("group_policies", []), "pagination": data.get("pagination")}

    if subcommand == "group-policies-by-admin":
        params, remaining = paginate(args, "group group-policies-by-admin")
        require_args(remaining, 1, ["admin-address"], "group group-policies-by-admin")
        data = await client.get(
            f"{GROUP}/group_policies_by_admin/{_address(remaining[0], 'admin-address')}", params
        )
        return {"groupPolicies": data.get("group_policies", []), "pagination": data.get("pagination")}

    if subcommand == "proposal":
        require_args(args, 1, ["proposal-id"], "group proposal")
        proposal_id = parse_big_int(args[0], "proposal-id")
        data = await client.get(f"{GROUP}/proposal/{proposal_id}")
        return {"proposal": data.get("proposal")}

    if subcommand == "proposals-by-group-policy":
        params, remaining = paginate(args, "group proposals-by-group-policy")
        require_args(remaining, 1, ["group-policy-address"], "group proposals-by-group-policy")
        address = _address(remaining[0], "group-policy-address")
        data = await client.get(f"{GROUP}/proposals_by_group_policy/{address}", params)
        return {"proposals": data.get("proposals", []), "pagination": data.get("pagination")}

    if subcommand == "vote":
        require_args(args, 2, ["proposal-id", "voter-address"], "group vote")
        proposal_id = parse_big_int(args[0], "proposal-id")
        voter = _address(args[1], "voter-address")
        data = await client.get(f"{GROUP}/vote_by_proposal_voter/{proposal_id}/{voter}")
        return {"vote": data.get("vote")}

    if subcommand == "votes-by-proposal":
        params, remaining = paginate(args, "group votes-by-proposal")
        require_args(remaining, 1, ["proposal-id"], "group votes-by-proposal")
        proposal_id = parse_big_int(remaining[0], "proposal-id")
        data = await client.get(f"{GROUP}/votes_by_proposal/{proposal_id}", params)
        return {"votes": data.get("votes", []), "pagination": data.get("pagination")}

    if subcommand == "votes-by-voter":
        params, remaining = paginate(args, "group votes-by-voter")
        require_args(remaining, 1, ["voter-address"], "group votes-by-voter")
        data = await client.get(f"{GROUP}/votes_by_voter/{_address(remaining[0], 'voter-address')}", params)
        return {"votes": data.get("votes", []), "pagination": data.get("pagination")}

    if subcommand == "groups-by-member":
        params, remaining = paginate(args, "group groups-by-member")
        require_args(remaining, 1, ["member-address"], "group groups-by-member")
        data = await client.get(f"{GROUP}/groups_by_member/{_address(remaining[0], 'member-address')}", params)
        return {"groups": data.get("groups", []), "pagination": data.get("pagination")}

    if subcommand == "tally":
        require_args(args, 1, ["proposal-id"], "group tally")
        proposal_id = parse_big_int(args[0], "proposal-id")
        data = await client.get(f"{GROUP}/proposals/{proposal_id}/tally")
        return {"tally": data.get("tally")}

    if subcommand == "groups":
        params, _ = paginate(args, "group groups")
        data = await client.get(f"{GROUP}/groups", params)
        return {"groups": data.get("groups", []), "pagination": data.get("pagination")}

    throw_unsupported_subcommand(QUERY, "group", subcommand)
