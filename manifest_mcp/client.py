"""
Client manager: lazily created node clients plus the per-endpoint rate limiter.

One ``CosmosClientManager`` exists per ``(chain_id, rpc_url)`` pair inside a
``ClientManagerCache``. Concurrent first callers share a single in-flight
initialisation; a failed initialisation is forgotten so the next call tries
again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from manifest_mcp.config import ManifestConfig
from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.errors import ErrorCode, ManifestMCPError, error_message
from manifest_mcp.rate_limiter import RequestRateLimiter
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.wallet import OfflineSigner, WalletProvider

logger = logging.getLogger(__name__)

QueryClientFactory = Callable[[ManifestConfig], Awaitable[CosmosApiClient]]
SigningClientFactory = Callable[[ManifestConfig, OfflineSigner, CosmosApiClient], Awaitable[RestSigningClient]]


async def create_query_client(config: ManifestConfig) -> CosmosApiClient:
    """Build a node client and check that it serves the configured chain."""
    client = CosmosApiClient(config)
    try:
        info = await client.fetch_node_info()
    except Exception:
        await client.aclose()
        raise
    network = (info.get("default_node_info") or {}).get("network")
    if network and network != config.chain_id:
        await client.aclose()
        raise ManifestMCPError(
            ErrorCode.INVALID_CONFIG,
            f'Node at {config.rpc_url} serves chain "{network}", expected "{config.chain_id}".',
            {"rpcUrl": config.rpc_url, "expectedChainId": config.chain_id, "actualChainId": network},
        )
    return client


async def create_signing_client(
    config: ManifestConfig,
    signer: OfflineSigner,
    api_client: CosmosApiClient,
) -> RestSigningClient:
    return RestSigningClient(api_client, signer, config)


class CosmosClientManager:
    def __init__(
        self,
        config: ManifestConfig,
        wallet: WalletProvider,
        *,
        query_client_factory: Optional[QueryClientFactory] = None,
        signing_client_factory: Optional[SigningClientFactory] = None,
    ) -> None:
        self.config = config
        self.wallet = wallet
        self.rate_limiter = RequestRateLimiter(config.requests_per_second)
        self._query_client_factory = query_client_factory or create_query_client
        self._signing_client_factory = signing_client_factory or create_signing_client
        self._query_client: Optional[CosmosApiClient] = None
        self._signing_client: Optional[RestSigningClient] = None
        self._query_init: Optional[asyncio.Task] = None
        self._signing_init: Optional[asyncio.Task] = None

    async def acquire_rate_limit(self) -> None:
        """Wait for a token before each request to the node."""
        await self.rate_limiter.acquire()

    async def get_address(self) -> str:
        return await self.wallet.get_address()

    async def _build_query_client(self) -> CosmosApiClient:
        try:
            client = await self._query_client_factory(self.config)
        except ManifestMCPError as exc:
            if exc.code == ErrorCode.INVALID_CONFIG:
                raise
            raise ManifestMCPError(
                ErrorCode.RPC_CONNECTION_FAILED,
                f"Failed to connect to RPC endpoint: {exc.message}",
                {"rpcUrl": self.config.rpc_url},
                retryable=exc.retryable,
            ) from exc
        except Exception as exc:
            raise ManifestMCPError(
                ErrorCode.RPC_CONNECTION_FAILED,
                f"Failed to connect to RPC endpoint: {error_message(exc)}",
                {"rpcUrl": self.config.rpc_url},
            ) from exc
        logger.info("query client ready chain_id=%s rpc_url=%s", self.config.chain_id, self.config.rpc_url)
        return client

    async def _build_signing_client(self) -> RestSigningClient:
        # Wallet errors already carry the right kind.
        signer = await self.wallet.get_signer()
        api_client = await self.get_query_client()
        try:
            client = await self._signing_client_factory(self.config, signer, api_client)
        except ManifestMCPError:
            raise
        except Exception as exc:
            raise ManifestMCPError(
                ErrorCode.RPC_CONNECTION_FAILED,
                f"Failed to connect signing client: {error_message(exc)}",
                {"rpcUrl": self.config.rpc_url},
            ) from exc
        logger.info("signing client ready chain_id=%s", self.config.chain_id)
        return client

    async def get_query_client(self) -> CosmosApiClient:
        if self._query_client is not None:
            return self._query_client
        if self._query_init is None:
            self._query_init = asyncio.ensure_future(self._build_query_client())
        task = self._query_init
        try:
            client = await asyncio.shield(task)
        except BaseException:
            if self._query_init is task and task.done():
                self._query_init = None
            raise
        if self._query_init is task:
            self._query_client = client
            self._query_init = None
        return client

    async def get_signing_client(self) -> RestSigningClient:
        if self._signing_client is not None:
            return self._signing_client
        if self._signing_init is None:
            self._signing_init = asyncio.ensure_future(self._build_signing_client())
        task = self._signing_init
        try:
            client = await asyncio.shield(task)
        except BaseException:
            if self._signing_init is task and task.done():
                self._signing_init = None
            raise
        if self._signing_init is task:
            self._signing_client = client
            self._signing_init = None
        return client

    async def disconnect(self) -> None:
        """Drop both clients; the next call builds fresh ones."""
        signing, query = self._signing_client, self._query_client
        self._signing_client = None
        self._query_client = None
        self._signing_init = None
        self._query_init = None
        if signing is not None:
            await signing.aclose()
        if query is not None:
            await query.aclose()

    async def aclose(self) -> None:
        await self.disconnect()


class ClientManagerCache:
    """Managers keyed by ``(chain_id, rpc_url)``; ``clear()`` resets it between tests."""

    def __init__(self) -> None:
        self._instances: Dict[Tuple[str, str], CosmosClientManager] = {}

    def __len__(self) -> int:
        return len(self._instances)

    def get_instance(self, config: ManifestConfig, wallet: WalletProvider, **kwargs: Any) -> CosmosClientManager:
        key = config.identity
        manager = self._instances.get(key)
        if manager is None:
            manager = CosmosClientManager(config, wallet, **kwargs)
            self._instances[key] = manager
        return manager

    def clear(self) -> None:
        self._instances.clear()

    async def aclose(self) -> None:
        managers = list(self._instances.values())
        self._instances.clear()
        for manager in managers:
            await manager.aclose()


default_manager_cache = ClientManagerCache()
