"""Manifest billing module transactions."""

from __future__ import annotations

from typing import Any, Dict, List

from manifest_mcp.errors import ErrorCode, ManifestMCPError
from manifest_mcp.modules import TX, throw_unsupported_subcommand
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.transactions.utils import broadcast, coin, msg, usage_hint
from manifest_mcp.validators import (
    MAX_META_HASH_BYTES,
    bytes_to_hex,
    extract_flag,
    filter_consumed_args,
    parse_big_int,
    parse_colon_pair,
    parse_hex_bytes,
    require_args,
    validate_address,
    validate_args_length,
)

MAX_PROVIDER_WITHDRAW_LIMIT = 100


def _fail(message: str, details: Dict[str, Any] | None = None) -> ManifestMCPError:
    return ManifestMCPError(ErrorCode.TX_FAILED, message, details, retryable=False)


def _withdraw_message(sender: str, args: List[str]) -> Dict[str, Any]:
    if not args:
        raise _fail(
            "withdraw requires at least one lease-uuid argument or provider-uuid with --provider flag. "
            + usage_hint("billing", "withdraw")
        )

    provider, provider_consumed = extract_flag(args, "--provider", "billing withdraw")
    if provider is None:
        unexpected = [arg for arg in args if arg.startswith("--")]
        if unexpected:
            raise _fail(
                f"Unexpected flag(s) in lease-specific withdrawal mode: {', '.join(unexpected)}. "
                "Use --provider for provider-wide withdrawal. " + usage_hint("billing", "withdraw")
            )
        return msg("/liftedinit.billing.v1.MsgWithdraw", sender=sender, leaseUuids=list(args), providerUuid="", limit="0")

    raw_limit, limit_consumed = extract_flag(args, "--limit", "billing withdraw")
    limit = 0
    if raw_limit is not None:
        limit = parse_big_int(raw_limit, "limit")
        if limit < 1 or limit > MAX_PROVIDER_WITHDRAW_LIMIT:
            raise _fail(f"Invalid limit: {limit}. Must be between 1 and {MAX_PROVIDER_WITHDRAW_LIMIT}.")

    extra = filter_consumed_args(args, provider_consumed + limit_consumed)
    if extra:
        received = ", ".join(f'"{arg}"' for arg in extra)
        raise _fail(
            "Provider-wide withdrawal does not accept additional arguments. "
            f"Got unexpected: {received}. For lease-specific withdrawal, omit --provider flag. "
            + usage_hint("billing", "withdraw")
        )
    # A zero limit lets the chain apply its default batch size.
    return msg("/liftedinit.billing.v1.MsgWithdraw", sender=sender, leaseUuids=[], providerUuid=provider, limit=str(limit))


async def route_billing_transaction(
    client: RestSigningClient,
    sender: str,
    subcommand: str,
    args: List[str],
    wait_for_confirmation: bool,
) -> Dict[str, Any]:
    validate_args_length(args, "billing transaction")

    if subcommand == "fund-credit":
        require_args(args, 2, ["tenant-address", "amount"], "billing fund-credit")
        validate_address(args[0], "tenant address")
        message = msg("/liftedinit.billing.v1.MsgFundCredit", sender=sender, tenant=args[0], amount=coin(args[1]))

    elif subcommand == "create-lease":
        raw_hash, consumed = extract_flag(args, "--meta-hash", "billing create-lease")
        meta_hash = parse_hex_bytes(raw_hash, "meta-hash", MAX_META_HASH_BYTES) if raw_hash is not None else b""
        item_args = filter_consumed_args(args, consumed)
        if not item_args:
            usage = usage_hint("billing", "create-lease")
            raise _fail(f"create-lease requires at least one sku-uuid:quantity pair. {usage}", {"usage": usage})
        items = []
        for arg in item_args:
            sku_uuid, quantity = parse_colon_pair(arg, "sku-uuid", "quantity", "lease item")
            items.append({"skuUuid": sku_uuid, "quantity": str(parse_big_int(quantity, "quantity"))})
        message = msg(
            "/liftedinit.billing.v1.MsgCreateLease",
            tenant=sender,
            items=items,
            metaHash=bytes_to_hex(meta_hash),
        )

    elif subcommand == "close-lease":
        require_args(args, 1, ["lease-uuid"], "billing close-lease")
        message = msg("/liftedinit.billing.v1.MsgCloseLease", sender=sender, leaseUuids=list(args), reason="")

    elif subcommand == "withdraw":
        message = _withdraw_message(sender, args)

    else:
        throw_unsupported_subcommand(TX, "billing", subcommand)

    return await broadcast(client, sender, "billing", subcommand, [message], wait_for_confirmation)
