"""
Dispatcher for ``cosmos_query`` / ``cosmos_tx``.

Names are checked before anything else, the handler is resolved next (routing
errors are never retried), and only the network part of the call runs inside
the retry executor. Every attempt takes its own rate-limit token.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional, Sequence

from manifest_mcp.client import CosmosClientManager
from manifest_mcp.errors import ErrorCode, ManifestMCPError, error_message
from manifest_mcp.metrics import default_metrics
from manifest_mcp.modules import QUERY, TX, ModuleRegistry, default_registry
from manifest_mcp.retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

# The first character must not be a hyphen.
VALID_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_][a-zA-Z0-9_-]*$")


def validate_name(name: str, field: str, code: ErrorCode = ErrorCode.QUERY_FAILED) -> None:
    if not name or not VALID_NAME_PATTERN.fullmatch(name):
        raise ManifestMCPError(
            code,
            f'Invalid {field}: "{name}". Only alphanumeric characters, hyphens, and underscores are allowed.',
            retryable=False,
        )


def with_call_context(
    exc: ManifestMCPError, module: str, subcommand: str, args: Sequence[str]
) -> ManifestMCPError:
    """Merge ``{module, subcommand, args}`` into ``exc.details`` without overwriting handler keys."""
    details = dict(exc.details or {})
    if details.get("module"):
        return exc
    details.setdefault("module", module)
    details.setdefault("subcommand", subcommand)
    details.setdefault("args", list(args))
    return ManifestMCPError(exc.code, exc.message, details, retryable=exc.retryable)


def _record_retry(operation: str):
    def _on_retry(error: BaseException, attempt: int, delay_ms: int) -> None:
        default_metrics.incr_retry(operation)

    return _on_retry


def build_tx_result(
    module: str,
    subcommand: str,
    response: Dict[str, Any],
    wait_for_confirmation: bool,
) -> Dict[str, Any]:
    """Shape a ``sign_and_broadcast`` response into the tool-facing tx result."""
    result: Dict[str, Any] = {
        "module": module,
        "subcommand": subcommand,
        "transactionHash": response.get("transactionHash"),
        "code": response.get("code", 0),
        "height": str(response.get("height", 0)),
        "rawLog": response.get("rawLog") or None,
        "gasUsed": str(response.get("gasUsed", 0)),
        "gasWanted": str(response.get("gasWanted", 0)),
    }
    if wait_for_confirmation:
        result["confirmed"] = result["code"] == 0
        result["confirmationHeight"] = result["height"]
    return result


async def cosmos_query(
    manager: CosmosClientManager,
    module: str,
    subcommand: str,
    args: Optional[Sequence[str]] = None,
    *,
    policy: Optional[RetryPolicy] = None,
    registry: Optional[ModuleRegistry] = None,
) -> Dict[str, Any]:
    validate_name(module, "module")
    validate_name(subcommand, "subcommand")
    args = list(args or [])
    handler = (registry or default_registry()).get_handler(QUERY, module)

    async def attempt() -> Dict[str, Any]:
        await manager.acquire_rate_limit()
        client = await manager.get_query_client()
        try:
            result = await handler(client, subcommand, args)
        except ManifestMCPError as exc:
            enriched = with_call_context(exc, module, subcommand, args)
            if enriched is exc:
                raise
            raise enriched from exc
        except Exception as exc:
            raise ManifestMCPError(
                ErrorCode.QUERY_FAILED,
                f"Query {module} {subcommand} failed: {error_message(exc)}",
                {"module": module, "subcommand": subcommand, "args": list(args)},
            ) from exc
        return {"module": module, "subcommand": subcommand, "result": result}

    operation = f"query {module} {subcommand}"
    return await with_retry(
        attempt,
        policy or manager.config.retry,
        operation_name=operation,
        on_retry=_record_retry(operation),
    )


async def cosmos_tx(
    manager: CosmosClientManager,
    module: str,
    subcommand: str,
    args: Optional[Sequence[str]] = None,
    wait_for_confirmation: bool = False,
    *,
    policy: Optional[RetryPolicy] = None,
    registry: Optional[ModuleRegistry] = None,
) -> Dict[str, Any]:
    validate_name(module, "module", ErrorCode.TX_FAILED)
    validate_name(subcommand, "subcommand", ErrorCode.TX_FAILED)
    args = list(args or [])
    handler = (registry or default_registry()).get_handler(TX, module)

    async def attempt() -> Dict[str, Any]:
        await manager.acquire_rate_limit()
        client = await manager.get_signing_client()
        sender = await manager.get_address()
        try:
            return await handler(client, sender, subcommand, args, wait_for_confirmation)
        except ManifestMCPError as exc:
            enriched = with_call_context(exc, module, subcommand, args)
            if enriched is exc:
                raise
            raise enriched from exc
        except Exception as exc:
            raise ManifestMCPError(
                ErrorCode.TX_FAILED,
                f"Tx {module} {subcommand} failed: {error_message(exc)}",
                {"module": module, "subcommand": subcommand, "args": args},
            ) from exc

    operation = f"tx {module} {subcommand}"
    result = await with_retry(
        attempt,
        policy or manager.config.retry,
        operation_name=operation,
        on_retry=_record_retry(operation),
    )
    logger.info("tx complete module=%s subcommand=%s hash=%s", module, subcommand, result.get("transactionHash"))
    return result
