"""Auth module queries."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.modules import QUERY, throw_unsupported_subcommand
from manifest_mcp.queries.utils import QUERY_CODE, paginate, require_args, segment
from manifest_mcp.validators import bytes_to_hex, decode_address, encode_address, parse_hex_bytes, validate_address

AUTH = "/cosmos/auth/v1beta1"

# 20-byte accounts, 32-byte module/contract accounts; 256 leaves headroom.
MAX_ADDRESS_BYTES = 256


async def _bech32_prefix(client: CosmosApiClient) -> str:
    data = await client.get(f"{AUTH}/bech32")
    return data.get("bech32_prefix") or ""


async def route_auth_query(client: CosmosApiClient, subcommand: str, args: List[str]) -> Dict[str, Any]:
    if subcommand == "account":
        require_args(args, 1, ["address"], "auth account")
        data = await client.get(f"{AUTH}/accounts/{segment(args[0])}")
        return {"account": data.get("account")}

    if subcommand == "accounts":
        params, _ = paginate(args, "auth accounts")
        data = await client.get(f"{AUTH}/accounts", params)
        return {"accounts": data.get("accounts", []), "pagination": data.get("pagination")}

    if subcommand == "params":
        data = await client.get(f"{AUTH}/params")
        return {"params": data.get("params")}

    if subcommand == "module-accounts":
        data = await client.get(f"{AUTH}/module_accounts")
        return {"accounts": data.get("accounts", [])}

    if subcommand == "module-account-by-name":
        require_args(args, 1, ["name"], "auth module-account-by-name")
        data = await client.get(f"{AUTH}/module_accounts/{segment(args[0])}")
        return {"account": data.get("account")}

    # Conversions run locally against the chain's advertised prefix.
    if subcommand == "address-bytes-to-string":
        require_args(args, 1, ["address-bytes"], "auth address-bytes-to-string")
        payload = parse_hex_bytes(args[0], "address-bytes", MAX_ADDRESS_BYTES, QUERY_CODE)
        prefix = await _bech32_prefix(client)
        return {"addressString": encode_address(prefix, payload)}

    if subcommand == "address-string-to-bytes":
        require_args(args, 1, ["address-string"], "auth address-string-to-bytes")
        validate_address(args[0], "address-string")
        _, payload = decode_address(args[0])
        return {"addressBytes": bytes_to_hex(payload or b"")}

    if subcommand == "bech32-prefix":
        return {"bech32Prefix": await _bech32_prefix(client)}

    if subcommand == "account-info":
        require_args(args, 1, ["address"], "auth account-info")
        data = await client.get(f"{AUTH}/account_info/{segment(args[0])}")
        return {"info": data.get("info")}

    throw_unsupported_subcommand(QUERY, "auth", subcommand)
