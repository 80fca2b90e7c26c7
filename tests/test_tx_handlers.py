import base64
import json

import pytest

from manifest_mcp.errors import ErrorCode, ManifestMCPError
from manifest_mcp.transactions import (
    route_bank_transaction,
    route_billing_transaction,
    route_distribution_transaction,
    route_gov_transaction,
    route_group_transaction,
    route_manifest_transaction,
    route_sku_transaction,
    route_staking_transaction,
)
from manifest_mcp.validators import encode_address

SENDER = encode_address("manifest", bytes([9] * 20))
ALICE = encode_address("manifest", bytes([1] * 20))
BOB = encode_address("manifest", bytes([2] * 20))
VALOPER = encode_address("manifestvaloper", bytes([3] * 20))


class FakeSigningClient:
    def __init__(self):
        self.calls = []

    async def sign_and_broadcast(self, sender, messages, fee="auto", memo=""):
        self.calls.append({"sender": sender, "messages": messages, "fee": fee, "memo": memo})
        return {"transactionHash": "HASH", "code": 0, "height": 12, "gasUsed": 1, "gasWanted": 2}

    @property
    def message(self):
        return self.calls[-1]["messages"][0]


@pytest.fixture
def client():
    return FakeSigningClient()


@pytest.mark.asyncio
async def test_bank_send_with_memo(client):
    result = await route_bank_transaction(client, SENDER, "send", [ALICE, "--memo", "rent", "250umfx"], False)
    assert result["transactionHash"] == "HASH"
    assert result["subcommand"] == "send"
    assert client.calls[0]["memo"] == "rent"
    assert client.calls[0]["fee"] == "auto"
    assert client.message["value"] == {
        "fromAddress": SENDER,
        "toAddress": ALICE,
        "amount": [{"denom": "umfx", "amount": "250"}],
    }


@pytest.mark.asyncio
async def test_bank_multi_send_totals_inputs_per_denom(client):
    await route_bank_transaction(client, SENDER, "multi-send", [f"{ALICE}:10umfx", f"{BOB}:5umfx", f"{BOB}:1upwr"], False)
    value = client.message["value"]
    assert value["inputs"] == [
        {"address": SENDER, "coins": [{"denom": "umfx", "amount": "15"}, {"denom": "upwr", "amount": "1"}]}
    ]
    assert len(value["outputs"]) == 3


@pytest.mark.asyncio
async def test_bank_send_rejects_long_memo(client):
    with pytest.raises(ManifestMCPError, match="Memo too long"):
        await route_bank_transaction(client, SENDER, "send", [ALICE, "1umfx", "--memo", "x" * 300], False)
    assert client.calls == []


@pytest.mark.asyncio
async def test_too_many_args_rejected(client):
    with pytest.raises(ManifestMCPError, match="Too many arguments"):
        await route_bank_transaction(client, SENDER, "multi-send", [f"{ALICE}:1umfx"] * 101, False)


@pytest.mark.asyncio
async def test_staking_undelegate_alias_reports_unbond(client):
    result = await route_staking_transaction(client, SENDER, "undelegate", [VALOPER, "5umfx"], True)
    assert client.message["typeUrl"] == "/cosmos.staking.v1beta1.MsgUndelegate"
    assert result["subcommand"] == "unbond"
    assert result["confirmed"] is True


@pytest.mark.asyncio
async def test_distribution_fund_community_pool(client):
    await route_distribution_transaction(client, SENDER, "fund-community-pool", ["7umfx"], False)
    assert client.message["value"] == {"depositor": SENDER, "amount": [{"denom": "umfx", "amount": "7"}]}


@pytest.mark.asyncio
async def test_gov_vote_and_weighted_vote(client):
    await route_gov_transaction(client, SENDER, "vote", ["4", "no_with_veto", "--metadata", "why"], False)
    assert client.message["value"] == {"proposalId": "4", "voter": SENDER, "option": 4, "metadata": "why"}

    await route_gov_transaction(client, SENDER, "weighted-vote", ["4", "yes=0.7,no=0.3"], False)
    assert client.message["value"]["options"] == [
        {"option": 1, "weight": "700000000000000000"},
        {"option": 3, "weight": "300000000000000000"},
    ]
    with pytest.raises(ManifestMCPError, match="option=weight"):
        await route_gov_transaction(client, SENDER, "weighted-vote", ["4", "yes"], False)


@pytest.mark.asyncio
async def test_unsupported_tx_subcommand(client):
    with pytest.raises(ManifestMCPError) as exc:
        await route_gov_transaction(client, SENDER, "submit-proposal", [], False)
    assert exc.value.code == ErrorCode.UNSUPPORTED_TX
    assert exc.value.details["availableSubcommands"] == ["vote", "weighted-vote", "deposit"]


@pytest.mark.asyncio
async def test_billing_create_lease_items_and_meta_hash(client):
    await route_billing_transaction(client, SENDER, "create-lease", ["sku-a:2", "--meta-hash", "abcd", "sku-b:1"], False)
    assert client.message["value"] == {
        "tenant": SENDER,
        "items": [{"skuUuid": "sku-a", "quantity": "2"}, {"skuUuid": "sku-b", "quantity": "1"}],
        "metaHash": "abcd",
    }
    with pytest.raises(ManifestMCPError, match="at least one sku-uuid:quantity"):
        await route_billing_transaction(client, SENDER, "create-lease", ["--meta-hash", "ab"], False)


@pytest.mark.asyncio
async def test_billing_withdraw_modes(client):
    await route_billing_transaction(client, SENDER, "withdraw", ["lease-1", "lease-2"], False)
    assert client.message["value"]["leaseUuids"] == ["lease-1", "lease-2"]

    await route_billing_transaction(client, SENDER, "withdraw", ["--provider", "prov-1", "--limit", "50"], False)
    assert client.message["value"] == {"sender": SENDER, "leaseUuids": [], "providerUuid": "prov-1", "limit": "50"}

    with pytest.raises(ManifestMCPError, match="between 1 and 100"):
        await route_billing_transaction(client, SENDER, "withdraw", ["--provider", "prov-1", "--limit", "101"], False)
    with pytest.raises(ManifestMCPError, match="does not accept additional arguments"):
        await route_billing_transaction(client, SENDER, "withdraw", ["--provider", "prov-1", "lease-1"], False)
    with pytest.raises(ManifestMCPError, match="Unexpected flag"):
        await route_billing_transaction(client, SENDER, "withdraw", ["lease-1", "--limit", "5"], False)
    with pytest.raises(ManifestMCPError, match="Usage: withdraw"):
        await route_billing_transaction(client, SENDER, "withdraw", [], False)


@pytest.mark.asyncio
async def test_manifest_payout_and_burn(client):
    await route_manifest_transaction(client, SENDER, "payout", [f"{ALICE}:3umfx"], False)
    assert client.message["value"]["payoutPairs"] == [{"address": ALICE, "coin": {"denom": "umfx", "amount": "3"}}]
    await route_manifest_transaction(client, SENDER, "burn-held-balance", ["1umfx", "2upwr"], False)
    assert len(client.message["value"]["burnCoins"]) == 2


@pytest.mark.asyncio
async def test_group_create_group_policy_threshold(client):
    await route_group_transaction(
        client, SENDER, "create-group-policy", ["3", "meta", "threshold", "2", "86400", "0"], False
    )
    policy = client.message["value"]["decisionPolicy"]
    assert policy["typeUrl"] == "/cosmos.group.v1.ThresholdDecisionPolicy"
    assert policy["threshold"] == "2"
    assert policy["windows"]["votingPeriod"] == {"seconds": "86400", "nanos": 0}
    with pytest.raises(ManifestMCPError, match="policy type"):
        await route_group_transaction(client, SENDER, "create-group-policy", ["3", "m", "quorum", "2", "1", "0"], False)


@pytest.mark.asyncio
async def test_group_member_weights_validated(client):
    await route_group_transaction(client, SENDER, "create-group", ["team", f"{ALICE}:1", f"{BOB}:0.5"], False)
    assert [m["weight"] for m in client.message["value"]["members"]] == ["1", "0.5"]
    with pytest.raises(ManifestMCPError, match="member weight"):
        await route_group_transaction(client, SENDER, "create-group", ["team", f"{ALICE}:-1"], False)


@pytest.mark.asyncio
async def test_group_submit_proposal_messages(client):
    encoded = base64.b64encode(b"\x0a\x02hi").decode()
    payload = json.dumps({"typeUrl": "/cosmos.bank.v1beta1.MsgSend", "value": encoded})
    await route_group_transaction(
        client, SENDER, "submit-proposal", [ALICE, "Title", "Summary", payload, "--exec", "try"], False
    )
    value = client.message["value"]
    assert value["exec"] == 1
    assert value["messages"] == [{"typeUrl": "/cosmos.bank.v1beta1.MsgSend", "value": encoded}]
    assert value["proposers"] == [SENDER]

    with pytest.raises(ManifestMCPError, match="Invalid JSON"):
        await route_group_transaction(client, SENDER, "submit-proposal", [ALICE, "T", "S", "{oops"], False)
    with pytest.raises(ManifestMCPError, match="invalid base64"):
        bad = json.dumps({"typeUrl": "/x", "value": "!!!"})
        await route_group_transaction(client, SENDER, "submit-proposal", [ALICE, "T", "S", bad], False)
    with pytest.raises(ManifestMCPError, match="exec mode"):
        await route_group_transaction(client, SENDER, "vote", ["1", "yes", "--exec", "later"], False)


@pytest.mark.asyncio
async def test_sku_update_flags(client):
    await route_sku_transaction(
        client,
        SENDER,
        "update-sku",
        ["sku-1", "prov-1", "gpu", "per-hour", "100umfx", "--active", "false", "--meta-hash", "00ff"],
        False,
    )
    value = client.message["value"]
    assert value["active"] is False
    assert value["metaHash"] == "00ff"
    assert value["unit"] == 1
    assert value["basePrice"] == {"denom": "umfx", "amount": "100"}

    await route_sku_transaction(client, SENDER, "create-sku", ["prov-1", "cpu", "per-day", "5umfx"], False)
    assert client.message["value"]["unit"] == 2
    with pytest.raises(ManifestMCPError, match="Invalid unit"):
        await route_sku_transaction(client, SENDER, "create-sku", ["prov-1", "cpu", "weekly", "5umfx"], False)


@pytest.mark.asyncio
async def test_sku_update_params_validates_every_address(client):
    await route_sku_transaction(client, SENDER, "update-params", [ALICE, BOB], False)
    assert client.message["value"]["params"] == {"allowedList": [ALICE, BOB]}
    with pytest.raises(ManifestMCPError) as exc:
        await route_sku_transaction(client, SENDER, "update-params", [ALICE, "bogus"], False)
    assert exc.value.code == ErrorCode.INVALID_ADDRESS
