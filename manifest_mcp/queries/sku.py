"""Manifest SKU module queries."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.modules import QUERY, throw_unsupported_subcommand
from manifest_mcp.queries.utils import paginate, require_args, segment
from manifest_mcp.validators import extract_boolean_flag

SKU = "/liftedinit/sku/v1"


def _listing_params(args: Sequence[str], context: str) -> Tuple[Dict[str, str], List[str]]:
    active_only, rest = extract_boolean_flag(args, "--active-only")
    params, remaining = paginate(rest, context)
    if active_only:
        params["active_only"] = "true"
    return params, remaining


async def route_sku_query(client: CosmosApiClient, subcommand: str, args: List[str]) -> Dict[str, Any]:
    if subcommand == "params":
        data = await client.get(f"{SKU}/params")
        return {"params": data.get("params")}

    if subcommand == "provider":
        require_args(args, 1, ["provider-uuid"], "sku provider")
        data = await client.get(f"{SKU}/provider/{segment(args[0])}")
        return {"provider": data.get("provider")}

    if subcommand == "providers":
        params, _ = _listing_params(args, "sku providers")
        data = await client.get(f"{SKU}/providers", params)
        return {"providers": data.get("providers", []), "pagination": data.get("pagination")}

    if subcommand == "sku":
        require_args(args, 1, ["sku-uuid"], "sku sku")
        data = await client.get(f"{SKU}/sku/{segment(args[0])}")
        return {"sku": data.get("sku")}

    if subcommand == "skus":
        params, _ = _listing_params(args, "sku skus")
        data = await client.get(f"{SKU}/skus", params)
        return {"skus": data.get("skus", []), "pagination": data.get("pagination")}

    if subcommand == "skus-by-provider":
        params, remaining = _listing_params(args, "sku skus-by-provider")
        require_args(remaining, 1, ["provider-uuid"], "sku skus-by-provider")
        data = await client.get(f"{SKU}/skus/provider/{segment(remaining[0])}", params)
        return {"skus": data.get("skus", []), "pagination": data.get("pagination")}

    if subcommand == "provider-by-address":
        params, remaining = _listing_params(args, "sku provider-by-address")
        require_args(remaining, 1, ["address"], "sku provider-by-address")
        data = await client.get(f"{SKU}/providers/address/{segment(remaining[0])}", params)
        return {"providers": data.get("providers", []), "pagination": data.get("pagination")}

    throw_unsupported_subcommand(QUERY, "sku", subcommand)
