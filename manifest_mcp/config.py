"""
Configuration helpers for the Manifest MCP server.

This module centralizes chain/endpoint selection, gas pricing, rate limits,
retry policy, and logging settings. Defaults are read from the environment; no
secrets are stored in the repository. The wallet mnemonic is read from the
environment or a local file only when a wallet is wired up, and never logged.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import urlparse

from manifest_mcp.errors import ErrorCode, ManifestMCPError
from manifest_mcp.retry import DEFAULT_RETRY_POLICY, RetryPolicy

DEFAULT_ADDRESS_PREFIX = "manifest"
DEFAULT_REQUESTS_PER_SECOND = 10
DEFAULT_TOOL_RATE_LIMIT_QPS = 5


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw:
        try:
            return int(raw)
        except ValueError:
            return default
    return default


def _load_timeout() -> float:
    raw_timeout = os.getenv("MANIFEST_HTTP_TIMEOUT")
    if raw_timeout:
        try:
            return float(raw_timeout)
        except ValueError:
            return 10.0
    return 10.0


def _load_retry_policy() -> RetryPolicy:
    try:
        return RetryPolicy(
            max_retries=_env_int("MANIFEST_MAX_RETRIES", DEFAULT_RETRY_POLICY.max_retries),
            base_delay_ms=_env_int("MANIFEST_BASE_DELAY_MS", DEFAULT_RETRY_POLICY.base_delay_ms),
            max_delay_ms=_env_int("MANIFEST_MAX_DELAY_MS", DEFAULT_RETRY_POLICY.max_delay_ms),
        )
    except ManifestMCPError:
        return DEFAULT_RETRY_POLICY


# Default connection settings
DEFAULT_CHAIN_ID = os.getenv("MANIFEST_CHAIN_ID", "manifest-ledger-testnet")
DEFAULT_RPC_URL = os.getenv("MANIFEST_RPC_URL", "http://localhost:1317")
DEFAULT_GAS_PRICE = os.getenv("MANIFEST_GAS_PRICE", "1.0umfx")
DEFAULT_TIMEOUT = _load_timeout()

# Mnemonic handling
MNEMONIC_ENV_VAR = "MANIFEST_MNEMONIC"
MNEMONIC_FILE_ENV_VAR = "MANIFEST_MNEMONIC_FILE"

LOG_LEVEL = os.getenv("MANIFEST_MCP_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("MANIFEST_MCP_LOG_FORMAT", "json")  # json or plain

CHAIN_ID_REGEX = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]*$")
GAS_PRICE_REGEX = re.compile(r"^[0-9]+(\.[0-9]+)?[a-zA-Z]+$")
ADDRESS_PREFIX_REGEX = re.compile(r"^[a-z]+$")
LOCALHOST_NAMES = {"localhost", "127.0.0.1", "::1"}


def load_mnemonic() -> Optional[str]:
    """
    Load the wallet mnemonic from environment or a local file.

    Returns:
        The mnemonic if available, otherwise None. The value is never logged
        or returned to callers.
    """
    env_value = os.getenv(MNEMONIC_ENV_VAR)
    if env_value:
        return env_value.strip()

    mnemonic_path = os.getenv(MNEMONIC_FILE_ENV_VAR)
    if mnemonic_path:
        path = Path(mnemonic_path)
        if path.is_file():
            return path.read_text(encoding="utf-8").strip() or None

    return None


@dataclass(slots=True)
class ManifestConfig:
    """Runtime configuration for chain access."""

    chain_id: str = DEFAULT_CHAIN_ID
    rpc_url: str = DEFAULT_RPC_URL
    gas_price: str = DEFAULT_GAS_PRICE
    address_prefix: str = os.getenv("MANIFEST_ADDRESS_PREFIX", DEFAULT_ADDRESS_PREFIX)
    requests_per_second: int = _env_int("MANIFEST_REQUESTS_PER_SECOND", DEFAULT_REQUESTS_PER_SECOND)
    retry: RetryPolicy = field(default_factory=_load_retry_policy)
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT
    tool_rate_limit_qps: float = DEFAULT_TOOL_RATE_LIMIT_QPS
    per_tool_rate_limits: dict[str, float] = field(default_factory=dict)

    @property
    def identity(self) -> tuple[str, str]:
        return (self.chain_id, self.rpc_url)


def _is_localhost(hostname: str) -> bool:
    return hostname.strip("[]") in LOCALHOST_NAMES


def _validate_rpc_url(url: str) -> Optional[str]:
    """Return a problem description, or None when the URL is acceptable."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return "rpc_url must be a valid URL"
    if not parsed.scheme or not parsed.netloc:
        return "rpc_url must be a valid URL"
    if parsed.scheme == "https":
        return None
    if parsed.scheme == "http" and _is_localhost(parsed.hostname or ""):
        return None
    return (
        f"rpc_url must use HTTPS (got {parsed.scheme}://). HTTP is only allowed for "
        "local development (localhost, 127.0.0.1, ::1)."
    )


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: ManifestConfig) -> List[str]:
    """Collect every problem with ``config``; an empty list means valid."""
    errors: List[str] = []

    if not config.chain_id:
        errors.append("chain_id is required")
    elif not CHAIN_ID_REGEX.fullmatch(config.chain_id):
        errors.append('chain_id must be alphanumeric with hyphens (e.g., "manifest-ledger-testnet")')

    if not config.rpc_url:
        errors.append("rpc_url is required")
    else:
        problem = _validate_rpc_url(config.rpc_url)
        if problem:
            errors.append(problem)

    if not config.gas_price:
        errors.append("gas_price is required")
    elif not GAS_PRICE_REGEX.fullmatch(config.gas_price):
        errors.append('gas_price must be a number followed by denomination (e.g., "1.0umfx")')

    if config.address_prefix is not None and not ADDRESS_PREFIX_REGEX.fullmatch(config.address_prefix):
        errors.append("address_prefix must be lowercase letters only")

    if not _is_positive_int(config.requests_per_second):
        errors.append("requests_per_second must be a positive integer")

    if not isinstance(config.retry, RetryPolicy):
        errors.append("retry must be a RetryPolicy")

    return errors


def ensure_valid_config(config: ManifestConfig) -> None:
    """Raise ``ManifestMCPError(INVALID_CONFIG)`` listing every problem with ``config``."""
    errors = validate_config(config)
    if errors:
        raise ManifestMCPError(
            ErrorCode.INVALID_CONFIG,
            f"Invalid configuration: {', '.join(errors)}",
            {"errors": errors},
        )


def create_validated_config(**fields: Any) -> ManifestConfig:
    """
    Build a config from keyword overrides and validate it.

    ``retry`` may be given as a ``RetryPolicy`` or a plain mapping of its
    fields. Raises ``ManifestMCPError(INVALID_CONFIG)`` listing every problem.
    """
    retry = fields.get("retry")
    if isinstance(retry, dict):
        fields["retry"] = RetryPolicy(**retry)
    try:
        config = ManifestConfig(**fields)
    except TypeError as exc:
        raise ManifestMCPError(
            ErrorCode.INVALID_CONFIG, f"Invalid configuration: {exc}", {"errors": [str(exc)]}
        ) from exc

    ensure_valid_config(config)
    return config


default_config = ManifestConfig()
