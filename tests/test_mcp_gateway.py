import json
import os

import pytest
from fastapi.testclient import TestClient

from manifest_mcp import server
from manifest_mcp.config import ManifestConfig
from manifest_mcp.errors import ErrorCode, ManifestMCPError
from manifest_mcp.mcp import ManifestMCPService
from manifest_mcp.metrics import default_metrics
from manifest_mcp.modules import default_registry
from manifest_mcp.server import MCP_SERVER_NAME, MCP_SERVER_VERSION, app, create_app
from manifest_mcp.validators import encode_address
from manifest_mcp.wallet import MnemonicWalletProvider, UnconfiguredWalletProvider

ADDRESS = encode_address("manifest", bytes([4] * 20))


class FakeApi:
    async def get(self, path, params=None):
        return {"params": {"default_send_enabled": True}}


class FakeManager:
    def __init__(self):
        self.config = ManifestConfig(chain_id="manifest-1", rpc_url="http://localhost:1317", gas_price="1umfx")

    async def acquire_rate_limit(self):
        return None

    async def get_query_client(self):
        return FakeApi()

    async def get_signing_client(self):
        raise AssertionError("no transactions in gateway tests")

    async def get_address(self):
        return ADDRESS


class FakeWallet:
    async def get_address(self):
        return ADDRESS

    async def get_signer(self):
        raise AssertionError("no signing in gateway tests")


@pytest.fixture
def client():
    manager = FakeManager()
    service = ManifestMCPService(manager.config, FakeWallet(), manager=manager, registry=default_registry())
    return TestClient(create_app(service))


def rpc(client, method, params=None, rpc_id=1):
    body = {"jsonrpc": "2.0", "id": rpc_id, "method": method}
    if params is not None:
        body["params"] = params
    return client.post("/mcp", json=body)


def test_initialize_echoes_protocol_version(client):
    resp = rpc(client, "initialize", {"protocolVersion": "2025-03-26", "capabilities": {}}, rpc_id=10)
    assert resp.status_code == 200
    result = resp.json()["result"]
    assert resp.json()["id"] == 10
    assert result["protocolVersion"] == "2025-03-26"
    assert result["serverInfo"] == {"name": MCP_SERVER_NAME, "version": MCP_SERVER_VERSION}
    assert result["capabilities"]["tools"] == {"listChanged": False}


def test_initialize_requires_protocol_version(client):
    resp = rpc(client, "initialize", {})
    assert resp.json()["error"]["code"] == -32602


def test_tools_list_both_spellings(client):
    for method in ("tools/list", "list_tools"):
        tools = rpc(client, method).json()["result"]["tools"]
        assert "cosmos_query" in [tool["name"] for tool in tools]


def test_tools_call_wraps_result(client):
    resp = rpc(
        client,
        "tools/call",
        {"name": "cosmos_query", "arguments": {"module": "bank", "subcommand": "params"}},
        rpc_id=2,
    )
    assert resp.status_code == 200
    result = resp.json()["result"]
    assert "isError" not in result
    assert result["structuredContent"]["result"] == {"params": {"default_send_enabled": True}}
    assert result["content"][0]["type"] == "text"
    assert json.loads(result["content"][0]["text"]) == result["structuredContent"]
    assert default_metrics.snapshot()["tool_success"] == {"cosmos_query": 1}


def test_call_tool_error_sets_is_error(client):
    resp = rpc(client, "call_tool", {"tool": "cosmos_query", "params": {"module": "nope", "subcommand": "x"}})
    result = resp.json()["result"]
    assert result["isError"] is True
    assert result["structuredContent"]["code"] == "UNKNOWN_MODULE"
    assert default_metrics.snapshot()["tool_error"] == {"cosmos_query": 1}


def test_tools_call_requires_name(client):
    assert rpc(client, "tools/call", {"arguments": {}}).json()["error"]["code"] == -32602
    assert rpc(client, "tools/call", {"name": "list_modules", "arguments": "all"}).json()["error"]["code"] == -32602


def test_parse_error(client):
    resp = client.post("/mcp", content=b"{not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == -32700


def test_invalid_request_shapes(client):
    resp = client.post("/mcp", json=[1, 2])
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == -32600

    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 3})
    assert resp.json() == {"jsonrpc": "2.0", "id": 3, "error": {"code": -32600, "message": "Invalid request"}}

    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 4, "method": "tools/list", "params": [1]})
    assert resp.json()["error"]["code"] == -32602


def test_unknown_method(client):
    assert rpc(client, "resources/list").json()["error"] == {"code": -32601, "message": "Method not found"}


def test_initialized_notification_has_no_body(client):
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert resp.status_code == 204
    assert resp.content == b""


def test_rate_limited_call_returns_429(client, monkeypatch):
    async def deny(key):
        return False

    monkeypatch.setattr(client.app.state.rate_limiter, "allow", deny)
    resp = rpc(client, "tools/call", {"name": "list_modules", "arguments": {}}, rpc_id=9)
    assert resp.status_code == 429
    assert resp.json()["error"] == {"code": 429, "message": "Rate limit exceeded"}
    assert default_metrics.snapshot()["rate_limited"] == 1


def test_rest_routes(client):
    assert client.get("/health").json() == {"status": "ok"}

    modules = client.get("/modules").json()
    assert "bank" in [module["name"] for module in modules["queryModules"]]

    bank = client.get("/modules/query/bank").json()
    assert bank["type"] == "query"
    assert bank["subcommands"][0] == {
        "name": "balance",
        "description": "Query account balance for a specific denom",
        "usage": "<address> <denom>",
    }

    missing = client.get("/modules/tx/wasm")
    assert missing.status_code == 404
    assert missing.json()["code"] == "UNKNOWN_MODULE"
    assert client.get("/modules/events/bank").status_code == 404


def test_request_id_header_and_metrics(client):
    resp = client.get("/health")
    request_id = resp.headers["X-Request-ID"]
    snapshot = client.get("/metrics").json()
    assert snapshot["requests"] == 2
    assert request_id in snapshot["recent_request_durations_ms"]


@pytest.mark.skipif(
    bool(os.getenv("MANIFEST_MNEMONIC") or os.getenv("MANIFEST_MNEMONIC_FILE")),
    reason="a mnemonic in the environment wires a wallet",
)
def test_module_level_app_is_query_only():
    resp = TestClient(app).post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "get_account_info"}},
    )
    result = resp.json()["result"]
    assert result["isError"] is True
    assert result["structuredContent"]["code"] == "WALLET_NOT_CONNECTED"


def test_default_wallet_follows_mnemonic(monkeypatch):
    monkeypatch.setattr(server, "load_mnemonic", lambda: None)
    assert isinstance(server._default_wallet(ManifestConfig()), UnconfiguredWalletProvider)

    monkeypatch.setattr(server, "load_mnemonic", lambda: " ".join(["abandon"] * 11 + ["about"]))
    wallet = server._default_wallet(ManifestConfig())
    assert isinstance(wallet, MnemonicWalletProvider)
    assert wallet.disconnected is False


def test_default_service_rejects_invalid_config(monkeypatch):
    monkeypatch.setattr(server, "load_mnemonic", lambda: None)
    with pytest.raises(ManifestMCPError) as exc:
        create_app(config=ManifestConfig(rpc_url="http://remote.example.com:1317"))
    assert exc.value.code == ErrorCode.INVALID_CONFIG
