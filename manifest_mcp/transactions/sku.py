"""Manifest SKU module transactions (provider and SKU catalogue)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from manifest_mcp.errors import ErrorCode, ManifestMCPError
from manifest_mcp.modules import TX, throw_unsupported_subcommand
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.transactions.utils import broadcast, coin, msg
from manifest_mcp.validators import (
    MAX_META_HASH_BYTES,
    bytes_to_hex,
    extract_flag,
    filter_consumed_args,
    parse_boolean_string,
    parse_hex_bytes,
    require_args,
    validate_address,
    validate_args_length,
)

UNIT_PER_HOUR = 1
UNIT_PER_DAY = 2

UNITS = {"per-hour": UNIT_PER_HOUR, "per-day": UNIT_PER_DAY}


def parse_unit(value: str) -> int:
    unit = UNITS.get(value.lower())
    if unit is None:
        raise ManifestMCPError(
            ErrorCode.TX_FAILED,
            f'Invalid unit: "{value}". Expected "per-hour" or "per-day".',
            retryable=False,
        )
    return unit


def _meta_hash(value: Optional[str]) -> str:
    if not value:
        return ""
    return bytes_to_hex(parse_hex_bytes(value, "meta-hash", MAX_META_HASH_BYTES))


def _update_flags(args: List[str], context: str) -> tuple[str, bool, List[str]]:
    meta_hash, hash_consumed = extract_flag(args, "--meta-hash", context)
    active, active_consumed = extract_flag(args, "--active", context)
    positional = filter_consumed_args(args, hash_consumed + active_consumed)
    return _meta_hash(meta_hash), parse_boolean_string(active, "active") if active else True, positional


async def route_sku_transaction(
    client: RestSigningClient,
    sender: str,
    subcommand: str,
    args: List[str],
    wait_for_confirmation: bool,
) -> Dict[str, Any]:
    validate_args_length(args, "sku transaction")

    if subcommand == "create-provider":
        raw_hash, consumed = extract_flag(args, "--meta-hash", "sku create-provider")
        positional = filter_consumed_args(args, consumed)
        require_args(positional, 3, ["address", "payout-address", "api-url"], "sku create-provider")
        address, payout_address, api_url = positional[:3]
        validate_address(address, "address")
        validate_address(payout_address, "payout address")
        message = msg(
            "/liftedinit.sku.v1.MsgCreateProvider",
            authority=sender,
            address=address,
            payoutAddress=payout_address,
            metaHash=_meta_hash(raw_hash),
            apiUrl=api_url,
        )

    elif subcommand == "update-provider":
        meta_hash, active, positional = _update_flags(args, "sku update-provider")
        require_args(positional, 4, ["provider-uuid", "address", "payout-address", "api-url"], "sku update-provider")
        uuid, address, payout_address, api_url = positional[:4]
        validate_address(address, "address")
        validate_address(payout_address, "payout address")
        message = msg(
            "/liftedinit.sku.v1.MsgUpdateProvider",
            authority=sender,
            uuid=uuid,
            address=address,
            payoutAddress=payout_address,
            metaHash=meta_hash,
            active=active,
            apiUrl=api_url,
        )

    elif subcommand == "deactivate-provider":
        require_args(args, 1, ["provider-uuid"], "sku deactivate-provider")
        message = msg("/liftedinit.sku.v1.MsgDeactivateProvider", authority=sender, uuid=args[0])

    elif subcommand == "create-sku":
        raw_hash, consumed = extract_flag(args, "--meta-hash", "sku create-sku")
        positional = filter_consumed_args(args, consumed)
        require_args(positional, 4, ["provider-uuid", "name", "unit", "base-price"], "sku create-sku")
        provider_uuid, name, unit, base_price = positional[:4]
        message = msg(
            "/liftedinit.sku.v1.MsgCreateSKU",
            authority=sender,
            providerUuid=provider_uuid,
            name=name,
            unit=parse_unit(unit),
            basePrice=coin(base_price),
            metaHash=_meta_hash(raw_hash),
        )

    elif subcommand == "update-sku":
        meta_hash, active, positional = _update_flags(args, "sku update-sku")
        require_args(positional, 5, ["sku-uuid", "provider-uuid", "name", "unit", "base-price"], "sku update-sku")
        uuid, provider_uuid, name, unit, base_price = positional[:5]
        message = msg(
            "/liftedinit.sku.v1.MsgUpdateSKU",
            authority=sender,
            uuid=uuid,
            providerUuid=provider_uuid,
            name=name,
            unit=parse_unit(unit),
            basePrice=coin(base_price),
            metaHash=meta_hash,
            active=active,
        )

    elif subcommand == "deactivate-sku":
        require_args(args, 1, ["sku-uuid"], "sku deactivate-sku")
        message = msg("/liftedinit.sku.v1.MsgDeactivateSKU", authority=sender, uuid=args[0])

    elif subcommand == "update-params":
        require_args(args, 1, ["allowed-address"], "sku update-params")
        for address in args:
            validate_address(address, "allowed address")
        message = msg("/liftedinit.sku.v1.MsgUpdateParams", authority=sender, params={"allowedList": list(args)})

    else:
        throw_unsupported_subcommand(TX, "sku", subcommand)

    return await broadcast(client, sender, "sku", subcommand, [message], wait_for_confirmation)
