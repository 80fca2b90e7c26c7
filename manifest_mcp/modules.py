"""
Static module/subcommand registry.

Two parallel tables describe what the server can do: query modules and
transaction modules. The tables are fixed at import time; ``build_registry``
attaches the handler functions and returns a read-only ``ModuleRegistry``
that the dispatcher and the tool layer share.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from manifest_mcp.errors import ErrorCode, ManifestMCPError

QUERY = "query"
TX = "tx"
MODULE_KINDS = (QUERY, TX)

Handler = Callable[..., Awaitable[Dict[str, Any]]]


@dataclass(frozen=True, slots=True)
class SubcommandDescriptor:
    name: str
    description: str
    usage: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        payload = {"name": self.name, "description": self.description}
        if self.usage:
            payload["usage"] = self.usage
        return payload


@dataclass(frozen=True, slots=True)
class ModuleDescriptor:
    name: str
    description: str
    subcommands: Tuple[SubcommandDescriptor, ...]
    handler: Optional[Handler] = None

    @property
    def subcommand_names(self) -> List[str]:
        return [sub.name for sub in self.subcommands]

    def get_subcommand(self, name: str) -> Optional[SubcommandDescriptor]:
        for sub in self.subcommands:
            if sub.name == name:
                return sub
        return None


def _module(name: str, description: str, *subcommands: Tuple[str, str, Optional[str]]) -> ModuleDescriptor:
    return ModuleDescriptor(
        name=name,
        description=description,
        subcommands=tuple(SubcommandDescriptor(*entry) for entry in subcommands),
    )


_QUERY_TABLE = (
    _module(
        "bank",
        "Querying commands for the bank module",
        ("balance", "Query account balance for a specific denom", "<address> <denom>"),
        ("balances", "Query all balances for an account", "<address> [--limit <1-1000>]"),
        ("spendable-balances", "Query spendable balances for an account", "<address> [--limit <1-1000>]"),
        ("total-supply", "Query total supply of all tokens", "[--limit <1-1000>]"),
        ("total", "Query total supply of all tokens (alias for total-supply)", "[--limit <1-1000>]"),
        ("supply-of", "Query supply of a specific denom", "<denom>"),
        ("params", "Query bank parameters", None),
        ("denom-metadata", "Query metadata for a specific denom", "<denom>"),
        ("denoms-metadata", "Query metadata for all denoms", "[--limit <1-1000>]"),
        ("send-enabled", "Query send enabled status for denoms", "[denom...] [--limit <1-1000>]"),
    ),
    _module(
        "staking",
        "Querying commands for the staking module",
        ("delegation", "Query a delegation", "<delegator-address> <validator-address>"),
        ("delegations", "Query all delegations for a delegator", "<delegator-address> [--limit <1-1000>]"),
        ("unbonding-delegation", "Query an unbonding delegation", "<delegator-address> <validator-address>"),
        (
            "unbonding-delegations",
            "Query all unbonding delegations for a delegator",
            "<delegator-address> [--limit <1-1000>]",
        ),
        (
            "redelegations",
            "Query redelegations",
            "<delegator-address> [src-validator-address] [dst-validator-address] [--limit <1-1000>]",
        ),
        ("validator", "Query a validator", "<validator-address>"),
        ("validators", "Query all validators", "[status] [--limit <1-1000>]"),
        (
            "validator-delegations",
            "Query all delegations to a validator",
            "<validator-address> [--limit <1-1000>]",
        ),
        (
            "validator-unbonding-delegations",
            "Query all unbonding delegations from a validator",
            "<validator-address> [--limit <1-1000>]",
        ),
        ("pool", "Query staking pool", None),
        ("params", "Query staking parameters", None),
        ("historical-info", "Query historical info at a height", "<height>"),
    ),
    _module(
        "distribution",
        "Querying commands for the distribution module",
        ("rewards", "Query distribution rewards for a delegator", "<delegator-address> [validator-address]"),
        ("commission", "Query validator commission", "<validator-address>"),
        ("community-pool", "Query community pool coins", None),
        ("params", "Query distribution parameters", None),
        ("validator-outstanding-rewards", "Query validator outstanding rewards", "<validator-address>"),
        (
            "slashes",
            "Query slashes for a validator",
            "<validator-address> [starting-height] [ending-height] [--limit <1-1000>]",
        ),
        ("delegator-validators", "Query validators for a delegator", "<delegator-address>"),
        ("delegator-withdraw-address", "Query delegator withdraw address", "<delegator-address>"),
    ),
    _module(
        "gov",
        "Querying commands for the governance module",
        ("proposal", "Query a proposal by ID", "<proposal-id>"),
        ("proposals", "Query all proposals", "[status] [voter] [depositor] [--limit <1-1000>]"),
        ("vote", "Query a vote on a proposal", "<proposal-id> <voter-address>"),
        ("votes", "Query all votes on a proposal", "<proposal-id> [--limit <1-1000>]"),
        ("deposit", "Query a deposit on a proposal", "<proposal-id> <depositor-address>"),
        ("deposits", "Query all deposits on a proposal", "<proposal-id> [--limit <1-1000>]"),
        ("tally", "Query tally of a proposal", "<proposal-id>"),
        ("params", "Query governance parameters", "[params-type]"),
    ),
    _module(
        "auth",
        "Querying commands for the auth module",
        ("account", "Query account by address", "<address>"),
        ("accounts", "Query all accounts", "[--limit <1-1000>]"),
        ("params", "Query auth parameters", None),
        ("module-accounts", "Query all module accounts", None),
        ("module-account-by-name", "Query module account by name", "<name>"),
        ("address-bytes-to-string", "Convert address bytes to string", "<address-bytes-hex>"),
        ("address-string-to-bytes", "Convert address string to bytes", "<address-string>"),
        ("bech32-prefix", "Query bech32 prefix", None),
        ("account-info", "Query account info", "<address>"),
    ),
    _module(
        "billing",
        "Querying commands for the Manifest billing module",
        ("params", "Query billing parameters", None),
        ("lease", "Query a lease by UUID", "<lease-uuid>"),
        ("leases", "Query all leases", "[--limit <1-1000>]"),
        ("leases-by-tenant", "Query leases by tenant address", "<tenant-address> [--limit <1-1000>]"),
        ("leases-by-provider", "Query leases by provider", "<provider-uuid> [--limit <1-1000>]"),
        ("leases-by-sku", "Query leases by SKU UUID", "<sku-uuid> [--limit <1-1000>]"),
        ("credit-account", "Query credit account for a tenant", "<tenant-address>"),
        ("credit-accounts", "Query all credit accounts", "[--limit <1-1000>]"),
        ("credit-address", "Query credit address for a tenant", "<tenant-address>"),
        ("withdrawable-amount", "Query withdrawable amount for a lease", "<lease-uuid>"),
        ("provider-withdrawable", "Query withdrawable amount for a provider", "<provider-uuid> [limit]"),
        ("credit-estimate", "Query credit estimate for a tenant", "<tenant-address>"),
    ),
    _module(
        "group",
        "Querying commands for the group module",
        ("group-info", "Query group info by ID", "<group-id>"),
        ("group-policy-info", "Query group policy info by address", "<group-policy-address>"),
        ("group-members", "Query members of a group", "<group-id> [--limit <1-1000>]"),
        ("groups-by-admin", "Query groups by admin address", "<admin-address> [--limit <1-1000>]"),
        ("group-policies-by-group", "Query group policies by group ID", "<group-id> [--limit <1-1000>]"),
        (
            "group-policies-by-admin",
            "Query group policies by admin address",
            "<admin-address> [--limit <1-1000>]",
        ),
        ("proposal", "Query a group proposal by ID", "<proposal-id>"),
        (
            "proposals-by-group-policy",
            "Query proposals by group policy address",
            "<group-policy-address> [--limit <1-1000>]",
        ),
        ("vote", "Query a vote by proposal and voter", "<proposal-id> <voter-address>"),
        ("votes-by-proposal", "Query votes on a group proposal", "<proposal-id> [--limit <1-1000>]"),
        ("votes-by-voter", "Query votes cast by a voter", "<voter-address> [--limit <1-1000>]"),
        ("groups-by-member", "Query groups by member address", "<member-address> [--limit <1-1000>]"),
        ("tally", "Query tally of a group proposal", "<proposal-id>"),
        ("groups", "Query all groups", "[--limit <1-1000>]"),
    ),
    _module(
        "sku",
        "Querying commands for the Manifest SKU module",
        ("params", "Query SKU module parameters", None),
        ("provider", "Query a provider by UUID", "<provider-uuid>"),
        ("providers", "Query all providers", "[--active-only] [--limit <1-1000>]"),
        ("sku", "Query a SKU by UUID", "<sku-uuid>"),
        ("skus", "Query all SKUs", "[--active-only] [--limit <1-1000>]"),
        ("skus-by-provider", "Query SKUs by provider UUID", "<provider-uuid> [--active-only] [--limit <1-1000>]"),
        (
            "provider-by-address",
            "Query providers by address",
            "<address> [--active-only] [--limit <1-1000>]",
        ),
    ),
)

_TX_TABLE = (
    _module(
        "bank",
        "Bank transaction subcommands",
        ("send", "Send tokens to another account", "<recipient-address> <amount> [--memo <text>]"),
        ("multi-send", "Send tokens to multiple accounts", "<address:amount>..."),
    ),
    _module(
        "staking",
        "Staking transaction subcommands",
        ("delegate", "Delegate tokens to a validator", "<validator-address> <amount>"),
        ("unbond", "Unbond tokens from a validator", "<validator-address> <amount>"),
        ("undelegate", "Unbond tokens from a validator (alias for unbond)", "<validator-address> <amount>"),
        (
            "redelegate",
            "Redelegate tokens from one validator to another",
            "<src-validator-address> <dst-validator-address> <amount>",
        ),
    ),
    _module(
        "distribution",
        "Distribution transaction subcommands",
        ("withdraw-rewards", "Withdraw rewards from a validator", "<validator-address>"),
        ("set-withdraw-addr", "Set withdraw address", "<withdraw-address>"),
        ("fund-community-pool", "Fund the community pool", "<amount>"),
    ),
    _module(
        "gov",
        "Governance transaction subcommands",
        ("vote", "Vote on a proposal", "<proposal-id> <yes|no|abstain|no_with_veto> [--metadata <text>]"),
        ("weighted-vote", "Weighted vote on a proposal", "<proposal-id> <option=weight,...>"),
        ("deposit", "Deposit tokens for a proposal", "<proposal-id> <amount>"),
    ),
    _module(
        "billing",
        "Manifest billing transaction subcommands",
        ("fund-credit", "Fund credit for a tenant", "<tenant-address> <amount>"),
        ("create-lease", "Create a new lease", "<sku-uuid:quantity>... [--meta-hash <hex>]"),
        ("close-lease", "Close one or more leases", "<lease-uuid>..."),
        (
            "withdraw",
            "Withdraw earnings from leases",
            "<lease-uuid>... | --provider <provider-uuid> [--limit <1-100>]",
        ),
    ),
    _module(
        "manifest",
        "Manifest module transaction subcommands",
        ("payout", "Execute a payout to multiple addresses", "<address:amount>..."),
        ("burn-held-balance", "Burn held balance", "<amount>..."),
    ),
    _module(
        "group",
        "Group transaction subcommands",
        ("create-group", "Create a group with members", "<metadata> <address:weight>..."),
        ("update-group-members", "Update group member weights", "<group-id> <address:weight>..."),
        ("update-group-admin", "Change the admin of a group", "<group-id> <new-admin-address>"),
        ("update-group-metadata", "Update group metadata", "<group-id> <metadata>"),
        (
            "create-group-policy",
            "Create a group policy",
            "<group-id> <metadata> <threshold|percentage> <value> <voting-period-secs> <min-execution-period-secs>",
        ),
        (
            "update-group-policy-admin",
            "Change the admin of a group policy",
            "<group-policy-address> <new-admin-address>",
        ),
        (
            "create-group-with-policy",
            "Create a group and its policy in one transaction",
            "<group-metadata> <group-policy-metadata> <threshold|percentage> <value> "
            "<voting-period-secs> <min-execution-period-secs> <address:weight>... [--group-policy-as-admin]",
        ),
        (
            "update-group-policy-decision-policy",
            "Replace the decision policy of a group policy",
            "<group-policy-address> <threshold|percentage> <value> <voting-period-secs> <min-execution-period-secs>",
        ),
        ("update-group-policy-metadata", "Update group policy metadata", "<group-policy-address> <metadata>"),
        (
            "submit-proposal",
            "Submit a group proposal",
            "<group-policy-address> <title> <summary> [message-json...] [--exec try] [--metadata <text>]",
        ),
        ("withdraw-proposal", "Withdraw a group proposal", "<proposal-id>"),
        (
            "vote",
            "Vote on a group proposal",
            "<proposal-id> <yes|no|abstain|no_with_veto> [--exec try] [--metadata <text>]",
        ),
        ("exec", "Execute a passed group proposal", "<proposal-id>"),
        ("leave-group", "Leave a group", "<group-id>"),
    ),
    _module(
        "sku",
        "Manifest SKU transaction subcommands",
        (
            "create-provider",
            "Register a provider",
            "<address> <payout-address> <api-url> [--meta-hash <hex>]",
        ),
        (
            "update-provider",
            "Update a provider",
            "<provider-uuid> <address> <payout-address> <api-url> [--meta-hash <hex>] [--active <true|false>]",
        ),
        ("deactivate-provider", "Deactivate a provider", "<provider-uuid>"),
        (
            "create-sku",
            "Create a SKU for a provider",
            "<provider-uuid> <name> <per-hour|per-day> <base-price> [--meta-hash <hex>]",
        ),
        (
            "update-sku",
            "Update a SKU",
            "<sku-uuid> <provider-uuid> <name> <per-hour|per-day> <base-price> "
            "[--meta-hash <hex>] [--active <true|false>]",
        ),
        ("deactivate-sku", "Deactivate a SKU", "<sku-uuid>"),
        ("update-params", "Replace the SKU module allowed list", "<allowed-address>..."),
    ),
)

QUERY_MODULES: Mapping[str, ModuleDescriptor] = MappingProxyType({m.name: m for m in _QUERY_TABLE})
TX_MODULES: Mapping[str, ModuleDescriptor] = MappingProxyType({m.name: m for m in _TX_TABLE})


def _unknown_kind(kind: str) -> ManifestMCPError:
    return ManifestMCPError(
        ErrorCode.UNKNOWN_MODULE,
        f'Unknown module type: "{kind}". Expected "query" or "tx".',
        {"availableTypes": list(MODULE_KINDS)},
    )


def _table(kind: str) -> Mapping[str, ModuleDescriptor]:
    if kind == QUERY:
        return QUERY_MODULES
    if kind == TX:
        return TX_MODULES
    raise _unknown_kind(kind)


def throw_unsupported_subcommand(kind: str, module: str, subcommand: str) -> None:
    """Raise the not-supported error for ``module``, listing its real subcommands."""
    descriptor = _table(kind).get(module)
    available = descriptor.subcommand_names if descriptor else []
    code = ErrorCode.UNSUPPORTED_QUERY if kind == QUERY else ErrorCode.UNSUPPORTED_TX
    label = "query" if kind == QUERY else "transaction"
    raise ManifestMCPError(
        code,
        f"Unsupported {module} {label} subcommand: {subcommand}",
        {"availableSubcommands": available},
    )


class ModuleRegistry:
    """Read-only lookup over the query and transaction module tables."""

    def __init__(
        self,
        query_modules: Mapping[str, ModuleDescriptor],
        tx_modules: Mapping[str, ModuleDescriptor],
    ) -> None:
        self._tables: Mapping[str, Mapping[str, ModuleDescriptor]] = MappingProxyType(
            {
                QUERY: MappingProxyType(dict(query_modules)),
                TX: MappingProxyType(dict(tx_modules)),
            }
        )

    def _modules(self, kind: str) -> Mapping[str, ModuleDescriptor]:
        table = self._tables.get(kind)
        if table is None:
            raise _unknown_kind(kind)
        return table

    def lookup(self, kind: str, module: str) -> ModuleDescriptor:
        modules = self._modules(kind)
        descriptor = modules.get(module)
        if descriptor is None:
            raise ManifestMCPError(
                ErrorCode.UNKNOWN_MODULE,
                f"Unknown {kind} module: {module}",
                {"availableModules": list(modules)},
            )
        return descriptor

    def get_handler(self, kind: str, module: str) -> Handler:
        descriptor = self.lookup(kind, module)
        if descriptor.handler is None:
            raise ManifestMCPError(
                ErrorCode.UNKNOWN_MODULE,
                f"No handler registered for {kind} module: {module}",
                {"availableModules": list(self._modules(kind))},
            )
        return descriptor.handler

    def get_available_modules(self) -> Dict[str, List[Dict[str, str]]]:
        return {
            "queryModules": [
                {"name": m.name, "description": m.description} for m in self._modules(QUERY).values()
            ],
            "txModules": [
                {"name": m.name, "description": m.description} for m in self._modules(TX).values()
            ],
        }

    def get_module_subcommands(self, kind: str, module: str) -> List[Dict[str, str]]:
        return [sub.to_dict() for sub in self.lookup(kind, module).subcommands]

    def is_subcommand_supported(self, kind: str, module: str, subcommand: str) -> bool:
        table = self._tables.get(kind)
        if table is None:
            return False
        descriptor = table.get(module)
        return descriptor is not None and descriptor.get_subcommand(subcommand) is not None

    def get_subcommand_usage(self, kind: str, module: str, subcommand: str) -> Optional[str]:
        table = self._tables.get(kind)
        descriptor = table.get(module) if table is not None else None
        if descriptor is None:
            return None
        sub = descriptor.get_subcommand(subcommand)
        return sub.usage if sub else None

    def get_supported_modules(self) -> Dict[str, Dict[str, List[str]]]:
        return {
            kind: {name: m.subcommand_names for name, m in self._tables[kind].items()}
            for kind in MODULE_KINDS
        }


def build_registry() -> ModuleRegistry:
    """Attach handler functions to the static tables."""
    # Handlers import this module for throw_unsupported_subcommand.
    from manifest_mcp import queries, transactions

    query_handlers = {
        "bank": queries.route_bank_query,
        "staking": queries.route_staking_query,
        "distribution": queries.route_distribution_query,
        "gov": queries.route_gov_query,
        "auth": queries.route_auth_query,
        "billing": queries.route_billing_query,
        "group": queries.route_group_query,
        "sku": queries.route_sku_query,
    }
    tx_handlers = {
        "bank": transactions.route_bank_transaction,
        "staking": transactions.route_staking_transaction,
        "distribution": transactions.route_distribution_transaction,
        "gov": transactions.route_gov_transaction,
        "billing": transactions.route_billing_transaction,
        "manifest": transactions.route_manifest_transaction,
        "group": transactions.route_group_transaction,
        "sku": transactions.route_sku_transaction,
    }
    return ModuleRegistry(
        {name: dataclasses.replace(m, handler=query_handlers[name]) for name, m in QUERY_MODULES.items()},
        {name: dataclasses.replace(m, handler=tx_handlers[name]) for name, m in TX_MODULES.items()},
    )


@lru_cache(maxsize=1)
def default_registry() -> ModuleRegistry:
    return build_registry()


def get_subcommand_usage(kind: str, module: str, subcommand: str) -> Optional[str]:
    """Usage hint from the static tables (no handlers needed)."""
    descriptor = _table(kind).get(module)
    if descriptor is None:
        return None
    sub = descriptor.get_subcommand(subcommand)
    return sub.usage if sub else None
