"""Bank module queries."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.modules import QUERY, throw_unsupported_subcommand
from manifest_mcp.queries.utils import paginate, require_args, segment

BANK = "/cosmos/bank/v1beta1"


async def route_bank_query(client: CosmosApiClient, subcommand: str, args: List[str]) -> Dict[str, Any]:
    """Paginated bank queries accept ``--limit`` (default 100, max 1000)."""
    if subcommand == "balance":
        require_args(args, 2, ["address", "denom"], "bank balance")
        address, denom = args[0], args[1]
        data = await client.get(f"{BANK}/balances/{segment(address)}/by_denom", {"denom": denom})
        return {"balance": data.get("balance")}

    if subcommand in ("balances", "spendable-balances"):
        context = f"bank {subcommand}"
        params, remaining = paginate(args, context)
        require_args(remaining, 1, ["address"], context)
        route = "balances" if subcommand == "balances" else "spendable_balances"
        data = await client.get(f"{BANK}/{route}/{segment(remaining[0])}", params)
        return {"balances": data.get("balances", []), "pagination": data.get("pagination")}

    if subcommand in ("total-supply", "total"):
        params, _ = paginate(args, "bank total-supply")
        data = await client.get(f"{BANK}/supply", params)
        return {"supply": data.get("supply", []), "pagination": data.get("pagination")}

    if subcommand == "supply-of":
        require_args(args, 1, ["denom"], "bank supply-of")
        data = await client.get(f"{BANK}/supply/by_denom", {"denom": args[0]})
        return {"amount": data.get("amount")}

    if subcommand == "params":
        data = await client.get(f"{BANK}/params")
        return {"params": data.get("params")}

    if subcommand == "denom-metadata":
        require_args(args, 1, ["denom"], "bank denom-metadata")
        # Query-string form so hierarchical denoms (factory/.../x) survive routing.
        data = await client.get(f"{BANK}/denoms_metadata_by_query_string", {"denom": args[0]})
        return {"metadata": data.get("metadata")}

    if subcommand == "denoms-metadata":
        params, _ = paginate(args, "bank denoms-metadata")
        data = await client.get(f"{BANK}/denoms_metadata", params)
        return {"metadatas": data.get("metadatas", []), "pagination": data.get("pagination")}

    if subcommand == "send-enabled":
        params, denoms = paginate(args, "bank send-enabled")
        query: Dict[str, Any] = dict(params)
        if denoms:
            query["denoms"] = denoms
        data = await client.get(f"{BANK}/send_enabled", query)
        return {"sendEnabled": data.get("send_enabled", []), "pagination": data.get("pagination")}

    throw_unsupported_subcommand(QUERY, "bank", subcommand)
