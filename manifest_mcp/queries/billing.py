"""Manifest billing module queries."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.errors import ManifestMCPError
from manifest_mcp.modules import QUERY, throw_unsupported_subcommand
from manifest_mcp.queries.utils import QUERY_CODE, optional_arg, paginate, parse_big_int, require_args, segment
from manifest_mcp.validators import MAX_PAGE_LIMIT

BILLING = "/liftedinit/billing/v1"

DEFAULT_PROVIDER_WITHDRAWABLE_LIMIT = 100


def _leases(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"leases": data.get("leases", []), "pagination": data.get("pagination")}


async def route_billing_query(client: CosmosApiClient, subcommand: str, args: List[str]) -> Dict[str, Any]:
    if subcommand == "params":
        data = await client.get(f"{BILLING}/params")
        return {"params": data.get("params")}

    if subcommand == "lease":
        require_args(args, 1, ["lease-uuid"], "billing lease")
        data = await client.get(f"{BILLING}/lease/{segment(args[0])}")
        return {"lease": data.get("lease")}

    if subcommand == "leases":
        params, _ = paginate(args, "billing leases")
        return _leases(await client.get(f"{BILLING}/leases", params))

    if subcommand in ("leases-by-tenant", "leases-by-provider", "leases-by-sku"):
        context = f"billing {subcommand}"
        params, remaining = paginate(args, context)
        target = subcommand.rsplit("-", 1)[1]
        arg_name = "tenant-address" if target == "tenant" else f"{target}-uuid"
        require_args(remaining, 1, [arg_name], context)
        return _leases(await client.get(f"{BILLING}/leases/{target}/{segment(remaining[0])}", params))

    if subcommand == "credit-account":
        require_args(args, 1, ["tenant-address"], "billing credit-account")
        data = await client.get(f"{BILLING}/credit/{segment(args[0])}")
        return {"creditAccount": data.get("credit_account")}

    if subcommand == "credit-accounts":
        params, _ = paginate(args, "billing credit-accounts")
        data = await client.get(f"{BILLING}/credits", params)
        return {"creditAccounts": data.get("credit_accounts", []), "pagination": data.get("pagination")}

    if subcommand == "credit-address":
        require_args(args, 1, ["tenant-address"], "billing credit-address")
        data = await client.get(f"{BILLING}/credit/{segment(args[0])}/address")
        return {"creditAddress": data.get("credit_address")}

    if subcommand == "withdrawable-amount":
        require_args(args, 1, ["lease-uuid"], "billing withdrawable-amount")
        data = await client.get(f"{BILLING}/lease/{segment(args[0])}/withdrawable")
        return {"amounts": data.get("amounts", [])}

    if subcommand == "provider-withdrawable":
        require_args(args, 1, ["provider-uuid"], "billing provider-withdrawable")
        raw_limit = optional_arg(args, 1)
        limit = parse_big_int(raw_limit, "limit") if raw_limit else DEFAULT_PROVIDER_WITHDRAWABLE_LIMIT
        if limit < 1 or limit > MAX_PAGE_LIMIT:
            raise ManifestMCPError(
                QUERY_CODE,
                f"Invalid limit: {limit}. Must be between 1 and {MAX_PAGE_LIMIT}.",
                retryable=False,
            )
        data = await client.get(f"{BILLING}/provider/{segment(args[0])}/withdrawable", {"limit": str(limit)})
        return {"amounts": data.get("amounts", [])}

    if subcommand == "credit-estimate":
        require_args(args, 1, ["tenant-address"], "billing credit-estimate")
        data = await client.get(f"{BILLING}/credit/{segment(args[0])}/estimate")
        return {"estimate": data}

    throw_unsupported_subcommand(QUERY, "billing", subcommand)
