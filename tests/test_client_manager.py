import asyncio

import pytest

from manifest_mcp.client import (
    ClientManagerCache,
    CosmosClientManager,
    create_query_client,
    default_manager_cache,
)
from manifest_mcp.config import ManifestConfig
from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.errors import ErrorCode, ManifestMCPError


def _config(**overrides):
    fields = {"chain_id": "manifest-1", "rpc_url": "http://localhost:1317", "gas_price": "1umfx"}
    fields.update(overrides)
    return ManifestConfig(**fields)


class FakeQueryClient:
    def __init__(self):
        self.closed = False

    async def aclose(self):
        self.closed = True


class FakeWallet:
    async def get_address(self):
        return "manifest1wallet"

    async def get_signer(self):
        return object()


@pytest.mark.asyncio
async def test_concurrent_first_callers_share_one_initialisation():
    calls = []

    async def factory(config):
        calls.append(config)
        await asyncio.sleep(0.01)
        return FakeQueryClient()

    manager = CosmosClientManager(_config(), FakeWallet(), query_client_factory=factory)
    clients = await asyncio.gather(*(manager.get_query_client() for _ in range(5)))
    assert len(calls) == 1
    assert all(c is clients[0] for c in clients)
    assert await manager.get_query_client() is clients[0]


@pytest.mark.asyncio
async def test_failed_initialisation_resets_for_next_call():
    attempts = []

    async def factory(config):
        attempts.append(1)
        if len(attempts) == 1:
            raise OSError("connection refused")
        return FakeQueryClient()

    manager = CosmosClientManager(_config(), FakeWallet(), query_client_factory=factory)
    with pytest.raises(ManifestMCPError) as exc:
        await manager.get_query_client()
    assert exc.value.code == ErrorCode.RPC_CONNECTION_FAILED
    assert exc.value.message == "Failed to connect to RPC endpoint: connection refused"
    assert exc.value.details == {"rpcUrl": "http://localhost:1317"}
    assert isinstance(await manager.get_query_client(), FakeQueryClient)
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_config_errors_pass_through():
    async def factory(config):
        raise ManifestMCPError(ErrorCode.INVALID_CONFIG, "wrong chain")

    manager = CosmosClientManager(_config(), FakeWallet(), query_client_factory=factory)
    with pytest.raises(ManifestMCPError) as exc:
        await manager.get_query_client()
    assert exc.value.code == ErrorCode.INVALID_CONFIG


@pytest.mark.asyncio
async def test_signing_client_built_from_wallet_signer():
    built = []

    async def query_factory(config):
        return FakeQueryClient()

    async def signing_factory(config, signer, api_client):
        built.append((signer, api_client))
        return FakeQueryClient()

    manager = CosmosClientManager(
        _config(), FakeWallet(), query_client_factory=query_factory, signing_client_factory=signing_factory
    )
    first = await manager.get_signing_client()
    assert await manager.get_signing_client() is first
    assert len(built) == 1
    assert built[0][1] is await manager.get_query_client()
    assert await manager.get_address() == "manifest1wallet"

    await manager.disconnect()
    assert first.closed
    assert await manager.get_signing_client() is not first


@pytest.mark.asyncio
async def test_wallet_errors_reach_caller_unchanged():
    class BrokenWallet(FakeWallet):
        async def get_signer(self):
            raise ManifestMCPError(ErrorCode.WALLET_NOT_CONNECTED, "no wallet")

    async def query_factory(config):
        return FakeQueryClient()

    manager = CosmosClientManager(_config(), BrokenWallet(), query_client_factory=query_factory)
    with pytest.raises(ManifestMCPError) as exc:
        await manager.get_signing_client()
    assert exc.value.code == ErrorCode.WALLET_NOT_CONNECTED


def test_cache_keys_on_chain_and_url():
    cache = ClientManagerCache()
    wallet = FakeWallet()
    first = cache.get_instance(_config(), wallet)
    assert cache.get_instance(_config(gas_price="2umfx"), wallet) is first
    other = cache.get_instance(_config(rpc_url="https://rest.example.com"), wallet)
    assert other is not first
    assert len(cache) == 2
    cache.clear()
    assert len(cache) == 0
    assert cache.get_instance(_config(), wallet) is not first


def test_default_cache_starts_empty():
    assert len(default_manager_cache) == 0


@pytest.mark.asyncio
async def test_default_query_factory_rejects_wrong_chain(monkeypatch):
    async def fake_node_info(self):
        return {"default_node_info": {"network": "other-chain"}}

    monkeypatch.setattr(CosmosApiClient, "fetch_node_info", fake_node_info)
    with pytest.raises(ManifestMCPError) as exc:
        await create_query_client(_config())
    assert exc.value.code == ErrorCode.INVALID_CONFIG
    assert exc.value.details["actualChainId"] == "other-chain"


@pytest.mark.asyncio
async def test_rate_limiter_sized_from_config():
    manager = CosmosClientManager(_config(requests_per_second=2), FakeWallet())
    await manager.acquire_rate_limit()
    assert manager.rate_limiter.remaining == 1
