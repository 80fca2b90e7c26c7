import pytest

from manifest_mcp import retry
from manifest_mcp.config import ManifestConfig
from manifest_mcp.cosmos import build_tx_result, cosmos_query, cosmos_tx, validate_name, with_call_context
from manifest_mcp.errors import ErrorCode, ManifestMCPError
from manifest_mcp.metrics import default_metrics
from manifest_mcp.retry import RetryPolicy
from manifest_mcp.validators import encode_address

RECIPIENT = encode_address("manifest", bytes([7] * 20))
FAST = RetryPolicy(max_retries=2, base_delay_ms=0, max_delay_ms=0)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    async def fake_sleep(delay_ms):
        return None

    monkeypatch.setattr(retry, "_sleep", fake_sleep)


class FakeApi:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def get(self, path, params=None):
        self.calls.append((path, params))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeSigningClient:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def sign_and_broadcast(self, sender, messages, fee="auto", memo=""):
        self.calls.append({"sender": sender, "messages": messages, "fee": fee, "memo": memo})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeManager:
    def __init__(self, api=None, signer=None):
        self.config = ManifestConfig(chain_id="manifest-1", rpc_url="http://localhost:1317", gas_price="1umfx")
        self.api = api
        self.signer = signer
        self.tokens = 0

    async def acquire_rate_limit(self):
        self.tokens += 1

    async def get_query_client(self):
        return self.api

    async def get_signing_client(self):
        return self.signer

    async def get_address(self):
        return "manifest1sender"


def test_validate_name_rules():
    validate_name("bank", "module")
    validate_name("total-supply", "subcommand")
    validate_name("_x", "module")
    for bad in ("", "-bank", "bank send", "bank;rm", "../x"):
        with pytest.raises(ManifestMCPError) as exc:
            validate_name(bad, "module")
        assert exc.value.code == ErrorCode.QUERY_FAILED
        assert exc.value.retryable is False


@pytest.mark.asyncio
async def test_query_result_shape():
    api = FakeApi([{"params": {"default_send_enabled": True}}])
    manager = FakeManager(api=api)
    result = await cosmos_query(manager, "bank", "params", policy=FAST)
    assert result == {"module": "bank", "subcommand": "params", "result": {"params": {"default_send_enabled": True}}}
    assert manager.tokens == 1


@pytest.mark.asyncio
async def test_bad_names_fail_before_any_network_access():
    manager = FakeManager(api=FakeApi([]))
    with pytest.raises(ManifestMCPError):
        await cosmos_query(manager, "bank;", "params")
    with pytest.raises(ManifestMCPError) as exc:
        await cosmos_tx(manager, "bank", "-send")
    assert exc.value.code == ErrorCode.TX_FAILED
    assert manager.tokens == 0


@pytest.mark.asyncio
async def test_unknown_module_is_not_retried():
    manager = FakeManager(api=FakeApi([]))
    with pytest.raises(ManifestMCPError) as exc:
        await cosmos_query(manager, "wasm", "code")
    assert exc.value.code == ErrorCode.UNKNOWN_MODULE
    assert manager.tokens == 0


@pytest.mark.asyncio
async def test_unsupported_subcommand_lists_available():
    manager = FakeManager(api=FakeApi([]))
    with pytest.raises(ManifestMCPError) as exc:
        await cosmos_query(manager, "bank", "nope", policy=FAST)
    assert exc.value.code == ErrorCode.UNSUPPORTED_QUERY
    assert "balance" in exc.value.details["availableSubcommands"]
    assert manager.tokens == 1


@pytest.mark.asyncio
async def test_transient_query_failure_retried_with_fresh_token():
    api = FakeApi([ManifestMCPError(ErrorCode.QUERY_FAILED, "HTTP 503 from node: unavailable"), {"params": {}}])
    manager = FakeManager(api=api)
    result = await cosmos_query(manager, "bank", "params", policy=FAST)
    assert result["result"] == {"params": {}}
    assert manager.tokens == 2
    assert default_metrics.snapshot()["retries"] == {"query bank params": 1}


@pytest.mark.asyncio
async def test_unexpected_query_error_is_wrapped():
    api = FakeApi([KeyError("pagination")])
    manager = FakeManager(api=api)
    with pytest.raises(ManifestMCPError) as exc:
        await cosmos_query(manager, "bank", "params", policy=FAST)
    assert exc.value.code == ErrorCode.QUERY_FAILED
    assert exc.value.message.startswith("Query bank params failed:")
    assert exc.value.details == {"module": "bank", "subcommand": "params", "args": []}


@pytest.mark.asyncio
async def test_query_error_without_details_gets_call_context():
    api = FakeApi([ManifestMCPError(ErrorCode.QUERY_FAILED, "node said no", retryable=False)])
    manager = FakeManager(api=api)
    with pytest.raises(ManifestMCPError) as exc:
        await cosmos_query(manager, "bank", "balance", [RECIPIENT, "umfx"], policy=FAST)
    assert exc.value.message == "node said no"
    assert exc.value.retryable is False
    assert exc.value.details == {"module": "bank", "subcommand": "balance", "args": [RECIPIENT, "umfx"]}


def test_call_context_keeps_handler_details():
    original = ManifestMCPError(ErrorCode.TX_FAILED, "bad", {"args": ["--limit"], "usage": "withdraw"})
    merged = with_call_context(original, "billing", "withdraw", ["x", "--limit"])
    assert merged.details == {"args": ["--limit"], "usage": "withdraw", "module": "billing", "subcommand": "withdraw"}

    tagged = ManifestMCPError(ErrorCode.TX_FAILED, "bad", {"module": "bank"})
    assert with_call_context(tagged, "billing", "withdraw", []) is tagged


@pytest.mark.asyncio
async def test_tx_result_shape_and_wait_fields():
    signer = FakeSigningClient(
        [{"transactionHash": "HASH", "code": 0, "height": 99, "rawLog": "", "gasUsed": 10, "gasWanted": 20, "events": []}]
    )
    manager = FakeManager(signer=signer)
    result = await cosmos_tx(manager, "bank", "send", [RECIPIENT, "10umfx"], True, policy=FAST)
    assert result == {
        "module": "bank",
        "subcommand": "send",
        "transactionHash": "HASH",
        "code": 0,
        "height": "99",
        "rawLog": None,
        "gasUsed": "10",
        "gasWanted": "20",
        "confirmed": True,
        "confirmationHeight": "99",
    }
    message = signer.calls[0]["messages"][0]
    assert message["typeUrl"] == "/cosmos.bank.v1beta1.MsgSend"
    assert message["value"]["fromAddress"] == "manifest1sender"
    assert message["value"]["amount"] == [{"denom": "umfx", "amount": "10"}]


def test_build_tx_result_without_wait():
    result = build_tx_result("gov", "vote", {"transactionHash": "H", "code": 0, "height": 5}, False)
    assert "confirmed" not in result
    assert result["height"] == "5"


@pytest.mark.asyncio
async def test_tx_errors_are_enriched_with_context():
    manager = FakeManager(signer=FakeSigningClient([]))
    with pytest.raises(ManifestMCPError) as exc:
        await cosmos_tx(manager, "bank", "send", ["not-an-address", "10umfx"], policy=FAST)
    err = exc.value
    assert err.code == ErrorCode.INVALID_ADDRESS
    assert err.details["module"] == "bank"
    assert err.details["subcommand"] == "send"
    assert err.details["args"] == ["not-an-address", "10umfx"]
    assert err.retryable is False


@pytest.mark.asyncio
async def test_confirmation_timeout_is_never_rebroadcast():
    signer = FakeSigningClient(
        [ManifestMCPError(ErrorCode.TX_CONFIRMATION_TIMEOUT, "not found after 60 seconds", retryable=False)]
    )
    manager = FakeManager(signer=signer)
    with pytest.raises(ManifestMCPError) as exc:
        await cosmos_tx(manager, "bank", "send", [RECIPIENT, "10umfx"], policy=FAST)
    assert exc.value.code == ErrorCode.TX_CONFIRMATION_TIMEOUT
    assert len(signer.calls) == 1


@pytest.mark.asyncio
async def test_unexpected_tx_error_is_wrapped():
    signer = FakeSigningClient([RuntimeError("signer exploded")])
    manager = FakeManager(signer=signer)
    with pytest.raises(ManifestMCPError) as exc:
        await cosmos_tx(manager, "bank", "send", [RECIPIENT, "10umfx"], policy=FAST)
    assert exc.value.code == ErrorCode.TX_FAILED
    assert exc.value.message == "Tx bank send failed: signer exploded"
    assert exc.value.details["module"] == "bank"
