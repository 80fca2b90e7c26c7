"""Group module transactions."""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Dict, List, Optional

from manifest_mcp.errors import ErrorCode, ManifestMCPError
from manifest_mcp.modules import TX, throw_unsupported_subcommand
from manifest_mcp.signing import RestSigningClient
from manifest_mcp.transactions.utils import broadcast, msg
from manifest_mcp.validators import (
    extract_boolean_flag,
    extract_flag,
    filter_consumed_args,
    parse_big_int,
    parse_colon_pair,
    parse_vote_option,
    require_args,
    validate_address,
    validate_args_length,
)

EXEC_UNSPECIFIED = 0
EXEC_TRY = 1

MEMBER_WEIGHT_REGEX = re.compile(r"^[0-9]+(\.[0-9]+)?$")

POLICY_ARG_NAMES = ["policy-type", "threshold-or-pct", "voting-period-secs", "min-execution-period-secs"]


def _fail(message: str) -> ManifestMCPError:
    return ManifestMCPError(ErrorCode.TX_FAILED, message, retryable=False)


def parse_exec(value: Optional[str]) -> int:
    if not value:
        return EXEC_UNSPECIFIED
    if value.lower() in ("try", "1"):
        return EXEC_TRY
    raise _fail(f'Invalid exec mode: "{value}". Expected: "try" for immediate execution.')


def build_decision_policy(policy_type: str, value: str, voting_period_secs: str, min_exec_period_secs: str) -> Dict[str, Any]:
    windows = {
        "votingPeriod": {"seconds": str(parse_big_int(voting_period_secs, "voting-period-secs")), "nanos": 0},
        "minExecutionPeriod": {
            "seconds": str(parse_big_int(min_exec_period_secs, "min-execution-period-secs")),
            "nanos": 0,
        },
    }
    kind = policy_type.lower()
    if kind == "threshold":
        return {"typeUrl": "/cosmos.group.v1.ThresholdDecisionPolicy", "threshold": value, "windows": windows}
    if kind == "percentage":
        return {"typeUrl": "/cosmos.group.v1.PercentageDecisionPolicy", "percentage": value, "windows": windows}
    raise _fail(f'Invalid policy type: "{policy_type}". Expected "threshold" or "percentage".')


def parse_member_requests(pairs: List[str]) -> List[Dict[str, str]]:
    members = []
    for pair in pairs:
        address, weight = parse_colon_pair(pair, "address", "weight", "member")
        validate_address(address, "member address")
        if not MEMBER_WEIGHT_REGEX.fullmatch(weight):
            raise _fail(
                f'Invalid member weight: "{weight}" for address "{address}". '
                'Expected a non-negative decimal string (e.g., "1", "0.5").'
            )
        members.append({"address": address, "weight": weight, "metadata": ""})
    return members


def parse_proposal_messages(json_args: List[str]) -> List[Dict[str, str]]:
    """Each arg is ``{"typeUrl": ..., "value": <base64 protobuf>}``; the value stays base64."""
    messages = []
    for index, raw in enumerate(json_args):
        try:
            parsed = json.loads(raw)
        except ValueError as exc:
            raise _fail(f"Invalid JSON in message at index {index}: {raw}") from exc
        if not isinstance(parsed, dict):
            raise _fail(f"Invalid JSON in message at index {index}: {raw}")
        type_url = parsed.get("typeUrl")
        value = parsed.get("value")
        if not isinstance(type_url, str) or not type_url:
            raise _fail(f'Message at index {index} missing required "typeUrl" field.')
        if not isinstance(value, str) or not value:
            raise _fail(
                f'Message at index {index} missing required "value" field. '
                "Provide protobuf-encoded bytes as a base64 string."
            )
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise _fail(f"Message at index {index}: invalid base64 value.") from exc
        messages.append({"typeUrl": type_url, "value": value})
    return messages


def _flags(args: List[str], context: str) -> tuple[int, str, List[str]]:
    exec_value, exec_consumed = extract_flag(args, "--exec", context)
    metadata, metadata_consumed = extract_flag(args, "--metadata", context)
    positional = filter_consumed_args(args, exec_consumed + metadata_consumed)
    return parse_exec(exec_value), metadata or "", positional


async def route_group_transaction(
    client: RestSigningClient,
    sender: str,
    subcommand: str,
    args: List[str],
    wait_for_confirmation: bool,
) -> Dict[str, Any]:
    validate_args_length(args, "group transaction")

    if subcommand == "create-group":
        require_args(args, 2, ["metadata", "address:weight"], "group create-group")
        message = msg(
            "/cosmos.group.v1.MsgCreateGroup",
            admin=sender,
            members=parse_member_requests(args[1:]),
            metadata=args[0],
        )

    elif subcommand == "update-group-members":
        require_args(args, 2, ["group-id", "address:weight"], "group update-group-members")
        message = msg(
            "/cosmos.group.v1.MsgUpdateGroupMembers",
            admin=sender,
            groupId=str(parse_big_int(args[0], "group-id")),
            memberUpdates=parse_member_requests(args[1:]),
        )

    elif subcommand == "update-group-admin":
        require_args(args, 2, ["group-id", "new-admin-address"], "group update-group-admin")
        group_id = parse_big_int(args[0], "group-id")
        validate_address(args[1], "new admin address")
        message = msg("/cosmos.group.v1.MsgUpdateGroupAdmin", admin=sender, groupId=str(group_id), newAdmin=args[1])

    elif subcommand == "update-group-metadata":
        require_args(args, 2, ["group-id", "metadata"], "group update-group-metadata")
        message = msg(
            "/cosmos.group.v1.MsgUpdateGroupMetadata",
            admin=sender,
            groupId=str(parse_big_int(args[0], "group-id")),
            metadata=args[1],
        )

    elif subcommand == "create-group-policy":
        require_args(args, 6, ["group-id", "metadata", *POLICY_ARG_NAMES], "group create-group-policy")
        message = msg(
            "/cosmos.group.v1.MsgCreateGroupPolicy",
            admin=sender,
            groupId=str(parse_big_int(args[0], "group-id")),
            metadata=args[1],
            decisionPolicy=build_decision_policy(*args[2:6]),
        )

    elif subcommand == "update-group-policy-admin":
        require_args(args, 2, ["group-policy-address", "new-admin-address"], "group update-group-policy-admin")
        validate_address(args[0], "group policy address")
        validate_address(args[1], "new admin address")
        message = msg(
            "/cosmos.group.v1.MsgUpdateGroupPolicyAdmin",
            admin=sender,
            groupPolicyAddress=args[0],
            newAdmin=args[1],
        )

    elif subcommand == "create-group-with-policy":
        as_admin, remaining = extract_boolean_flag(args, "--group-policy-as-admin")
        require_args(
            remaining,
            7,
            ["group-metadata", "group-policy-metadata", *POLICY_ARG_NAMES, "address:weight"],
            "group create-group-with-policy",
        )
        message = msg(
            "/cosmos.group.v1.MsgCreateGroupWithPolicy",
            admin=sender,
            members=parse_member_requests(remaining[6:]),
            groupMetadata=remaining[0],
            groupPolicyMetadata=remaining[1],
            groupPolicyAsAdmin=as_admin,
            decisionPolicy=build_decision_policy(*remaining[2:6]),
        )

    elif subcommand == "update-group-policy-decision-policy":
        require_args(
            args,
            5,
            ["group-policy-address", *POLICY_ARG_NAMES],
            "group update-group-policy-decision-policy",
        )
        validate_address(args[0], "group policy address")
        message = msg(
            "/cosmos.group.v1.MsgUpdateGroupPolicyDecisionPolicy",
            admin=sender,
            groupPolicyAddress=args[0],
            decisionPolicy=build_decision_policy(*args[1:5]),
        )

    elif subcommand == "update-group-policy-metadata":
        require_args(args, 2, ["group-policy-address", "metadata"], "group update-group-policy-metadata")
        validate_address(args[0], "group policy address")
        message = msg(
            "/cosmos.group.v1.MsgUpdateGroupPolicyMetadata",
            admin=sender,
            groupPolicyAddress=args[0],
            metadata=args[1],
        )

    elif subcommand == "submit-proposal":
        exec_mode, metadata, positional = _flags(args, "group submit-proposal")
        require_args(positional, 3, ["group-policy-address", "title", "summary"], "group submit-proposal")
        validate_address(positional[0], "group policy address")
        message = msg(
            "/cosmos.group.v1.MsgSubmitProposal",
            groupPolicyAddress=positional[0],
            proposers=[sender],
            metadata=metadata,
            messages=parse_proposal_messages(positional[3:]),
            exec=exec_mode,
            title=positional[1],
            summary=positional[2],
        )

    elif subcommand == "withdraw-proposal":
        require_args(args, 1, ["proposal-id"], "group withdraw-proposal")
        message = msg(
            "/cosmos.group.v1.MsgWithdrawProposal",
            proposalId=str(parse_big_int(args[0], "proposal-id")),
            address=sender,
        )

    elif subcommand == "vote":
        exec_mode, metadata, positional = _flags(args, "group vote")
        require_args(positional, 2, ["proposal-id", "option"], "group vote")
        message = msg(
            "/cosmos.group.v1.MsgVote",
            proposalId=str(parse_big_int(positional[0], "proposal-id")),
            voter=sender,
            option=parse_vote_option(positional[1]),
            metadata=metadata,
            exec=exec_mode,
        )

    elif subcommand == "exec":
        require_args(args, 1, ["proposal-id"], "group exec")
        message = msg(
            "/cosmos.group.v1.MsgExec",
            proposalId=str(parse_big_int(args[0], "proposal-id")),
            executor=sender,
        )

    elif subcommand == "leave-group":
        require_args(args, 1, ["group-id"], "group leave-group")
        message = msg(
            "/cosmos.group.v1.MsgLeaveGroup",
            address=sender,
            groupId=str(parse_big_int(args[0], "group-id")),
        )

    else:
        throw_unsupported_subcommand(TX, "group", subcommand)

    return await broadcast(client, sender, "group", subcommand, [message], wait_for_confirmation)
