"""
MCP tool surface for the Manifest chain.

Five tools are exposed: account info, the generic query and transaction
dispatchers, and two discovery tools over the module registry. Tool failures
never raise out of ``call_tool``; they come back as an error payload with the
caller's input and the error details redacted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from manifest_mcp.client import CosmosClientManager, default_manager_cache
from manifest_mcp.config import ManifestConfig, ensure_valid_config
from manifest_mcp.cosmos import cosmos_query, cosmos_tx
from manifest_mcp.errors import ErrorCode, ManifestMCPError, error_message
from manifest_mcp.modules import MODULE_KINDS, ModuleRegistry, default_registry
from manifest_mcp.redaction import sanitize_for_logging
from manifest_mcp.wallet import WalletProvider

logger = logging.getLogger(__name__)

ToolCallable = Callable[..., Awaitable[Any]]


@dataclass(slots=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: Dict[str, Any]


_EMPTY_SCHEMA: Dict[str, Any] = {"type": "object", "properties": {}, "required": []}

TOOL_DEFINITIONS: Dict[str, ToolDefinition] = {
    "get_account_info": ToolDefinition(
        name="get_account_info",
        description="Get the account address of the configured wallet.",
        input_schema=_EMPTY_SCHEMA,
    ),
    "cosmos_query": ToolDefinition(
        name="cosmos_query",
        description=(
            "Execute any Cosmos SDK query command. Use list_modules and "
            "list_module_subcommands to discover available options."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "module": {
                    "type": "string",
                    "description": 'The module name (e.g., "bank", "staking", "distribution", "gov", "auth")',
                },
                "subcommand": {
                    "type": "string",
                    "description": 'The subcommand (e.g., "balance", "balances", "delegations", "rewards")',
                },
                "args": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        'Additional arguments as an array of strings (e.g., ["<address>", "umfx"] '
                        "for bank balance)."
                    ),
                },
            },
            "required": ["module", "subcommand"],
        },
    ),
    "cosmos_tx": ToolDefinition(
        name="cosmos_tx",
        description=(
            "Execute any Cosmos SDK transaction. Signs with the configured wallet and "
            "estimates gas automatically. Use list_modules and list_module_subcommands "
            "to discover available options."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "module": {
                    "type": "string",
                    "description": 'The module name (e.g., "bank", "staking", "gov")',
                },
                "subcommand": {
                    "type": "string",
                    "description": 'The subcommand (e.g., "send", "delegate", "unbond", "vote")',
                },
                "args": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        'Transaction arguments as an array of strings (e.g., ["<to_address>", "1000umfx"] '
                        "for bank send)."
                    ),
                },
                "wait_for_confirmation": {
                    "type": "boolean",
                    "description": "Wait for the transaction to be included in a block. Defaults to false.",
                },
            },
            "required": ["module", "subcommand", "args"],
        },
    ),
    "list_modules": ToolDefinition(
        name="list_modules",
        description="List all query and transaction modules supported by the server.",
        input_schema=_EMPTY_SCHEMA,
    ),
    "list_module_subcommands": ToolDefinition(
        name="list_module_subcommands",
        description="List the subcommands of one module (query or tx) with usage hints.",
        input_schema={
            "type": "object",
            "properties": {
                "type": {
                    "type": "string",
                    "enum": list(MODULE_KINDS),
                    "description": "Whether to list query or transaction subcommands",
                },
                "module": {"type": "string", "description": 'The module name (e.g., "bank", "staking")'},
            },
            "required": ["type", "module"],
        },
    ),
}


def list_tools() -> List[Dict[str, Any]]:
    """Return the tool listing in MCP shape."""
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "inputSchema": tool.input_schema,
        }
        for tool in TOOL_DEFINITIONS.values()
    ]


def parse_args(raw_args: Any) -> List[str]:
    if isinstance(raw_args, (list, tuple)):
        return [str(item) for item in raw_args]
    return []


def _require_text(arguments: Dict[str, Any], names: List[str], code: ErrorCode) -> List[str]:
    values = [arguments.get(name) for name in names]
    if not all(isinstance(value, str) and value for value in values):
        raise ManifestMCPError(code, f"{' and '.join(names)} are required", retryable=False)
    return values  # type: ignore[return-value]


class ManifestMCPService:
    """Binds the tool table to one config, wallet and client manager."""

    def __init__(
        self,
        config: ManifestConfig,
        wallet: WalletProvider,
        *,
        manager: Optional[CosmosClientManager] = None,
        registry: Optional[ModuleRegistry] = None,
    ) -> None:
        ensure_valid_config(config)
        self.config = config
        self.wallet = wallet
        self.manager = manager or default_manager_cache.get_instance(config, wallet)
        self.registry = registry or default_registry()
        self._handlers: Dict[str, ToolCallable] = {
            "get_account_info": self.get_account_info,
            "cosmos_query": self.cosmos_query,
            "cosmos_tx": self.cosmos_tx,
            "list_modules": self.list_modules,
            "list_module_subcommands": self.list_module_subcommands,
        }

    def list_tools(self) -> List[Dict[str, Any]]:
        return list_tools()

    async def get_account_info(self) -> Dict[str, Any]:
        return {"address": await self.wallet.get_address()}

    async def cosmos_query(self, module: str = "", subcommand: str = "", args: Any = None) -> Dict[str, Any]:
        module, subcommand = _require_text(
            {"module": module, "subcommand": subcommand}, ["module", "subcommand"], ErrorCode.QUERY_FAILED
        )
        return await cosmos_query(self.manager, module, subcommand, parse_args(args), registry=self.registry)

    async def cosmos_tx(
        self,
        module: str = "",
        subcommand: str = "",
        args: Any = None,
        wait_for_confirmation: bool = False,
    ) -> Dict[str, Any]:
        module, subcommand = _require_text(
            {"module": module, "subcommand": subcommand}, ["module", "subcommand"], ErrorCode.TX_FAILED
        )
        return await cosmos_tx(
            self.manager,
            module,
            subcommand,
            parse_args(args),
            wait_for_confirmation is True,
            registry=self.registry,
        )

    async def list_modules(self) -> Dict[str, Any]:
        return self.registry.get_available_modules()

    async def list_module_subcommands(self, type: str = "", module: str = "") -> Dict[str, Any]:
        kind, module = _require_text({"type": type, "module": module}, ["type", "module"], ErrorCode.QUERY_FAILED)
        if kind not in MODULE_KINDS:
            raise ManifestMCPError(
                ErrorCode.QUERY_FAILED, 'type must be either "query" or "tx"', retryable=False
            )
        return {"type": kind, "module": module, "subcommands": self.registry.get_module_subcommands(kind, module)}

    async def call_tool(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a tool by name; failures are returned as a redacted error payload."""
        arguments = arguments or {}
        handler = self._handlers.get(tool_name)
        try:
            if handler is None:
                raise ManifestMCPError(
                    ErrorCode.UNKNOWN_ERROR,
                    f"Unknown tool: {tool_name}",
                    {"availableTools": list(TOOL_DEFINITIONS)},
                )
            try:
                return await handler(**arguments)
            except TypeError as exc:
                # Unexpected keyword names from the caller.
                raise ManifestMCPError(
                    ErrorCode.UNKNOWN_ERROR, f"Invalid parameters: {error_message(exc)}", retryable=False
                ) from exc
        except ManifestMCPError as exc:
            logger.info("tool=%s failed code=%s", tool_name, exc.code.value, extra={"tool": tool_name})
            return self._error_payload(tool_name, arguments, exc.message, exc.code, exc.details)
        except Exception as exc:
            logger.exception("tool=%s raised unexpectedly", tool_name, extra={"tool": tool_name})
            return self._error_payload(tool_name, arguments, error_message(exc))

    @staticmethod
    def _error_payload(
        tool_name: str,
        arguments: Dict[str, Any],
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": True,
            "tool": tool_name,
            "input": sanitize_for_logging(arguments),
            "message": message,
        }
        if code is not None:
            payload["code"] = code.value
            payload["details"] = sanitize_for_logging(details)
        return payload
