"""
Direct-mode signer backed by cosmpy.

Messages arrive as ``{"typeUrl", "value"}`` dicts with camelCase field names,
the shape the transaction handlers build. Each type URL is resolved to the
generated protobuf class shipped under ``cosmpy.protos``; message types with
no generated class there cannot be signed by this signer.

Field conventions of the message dicts:
  - bytes fields are hex strings (``metaHash``),
  - ``google.protobuf.Any`` fields are ``{"typeUrl", "value": <base64>}`` for
    pre-encoded messages, or ``{"typeUrl", **fields}`` to be encoded here,
  - durations are ``{"seconds", "nanos"}``.
"""

from __future__ import annotations

import base64
import binascii
import importlib
import logging
from typing import Any, Dict, List, Type

from cosmpy.aerial.wallet import LocalWallet
from cosmpy.protos.cosmos.base.v1beta1.coin_pb2 import Coin
from cosmpy.protos.cosmos.crypto.secp256k1.keys_pb2 import PubKey
from cosmpy.protos.cosmos.tx.signing.v1beta1.signing_pb2 import SignMode
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import AuthInfo, Fee, ModeInfo, SignDoc, SignerInfo, TxBody, TxRaw
from google.protobuf.any_pb2 import Any as AnyMessage
from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.json_format import ParseDict, ParseError
from google.protobuf.message import Message

from manifest_mcp.errors import ErrorCode, ManifestMCPError, error_message

logger = logging.getLogger(__name__)

PROTO_ROOT = "cosmpy.protos"
PROTO_MODULES = ("tx_pb2", "types_pb2")
SECP256K1_PUBKEY_TYPE_URL = "/cosmos.crypto.secp256k1.PubKey"
ANY_TYPE = "google.protobuf.Any"
DURATION_TYPE = "google.protobuf.Duration"


def _fail(message: str, details: Dict[str, Any] | None = None) -> ManifestMCPError:
    return ManifestMCPError(ErrorCode.TX_FAILED, message, details, retryable=False)


def resolve_message_class(type_url: str) -> Type[Message]:
    """Map ``/cosmos.bank.v1beta1.MsgSend`` to cosmpy's generated ``MsgSend``."""
    package, _, name = type_url.lstrip("/").rpartition(".")
    if package and name:
        for module_name in PROTO_MODULES:
            try:
                module = importlib.import_module(f"{PROTO_ROOT}.{package}.{module_name}")
            except ModuleNotFoundError:
                continue
            message_class = getattr(module, name, None)
            if message_class is not None:
                return message_class
    raise _fail(
        f"No protobuf definition available for message type {type_url}; it cannot be signed locally.",
        {"typeUrl": type_url},
    )


def _is_repeated(field: FieldDescriptor) -> bool:
    return field.label == FieldDescriptor.LABEL_REPEATED


def to_any(item: Dict[str, Any]) -> AnyMessage:
    type_url = item.get("typeUrl")
    if not isinstance(type_url, str) or not type_url:
        raise _fail('Packed message is missing its "typeUrl".')
    value = item.get("value")
    if isinstance(value, str):
        try:
            raw = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise _fail(f"Packed message {type_url} has an invalid base64 value.") from exc
        return AnyMessage(type_url=type_url, value=raw)
    fields = value if isinstance(value, dict) else {k: v for k, v in item.items() if k != "typeUrl"}
    return AnyMessage(type_url=type_url, value=build_message(type_url, fields).SerializeToString())


def _fill(message: Message, value: Dict[str, Any]) -> None:
    fields = {field.json_name: field for field in message.DESCRIPTOR.fields}
    scalars: Dict[str, Any] = {}
    for key, item in value.items():
        field = fields.get(key)
        if field is None:
            raise _fail(f'Unknown field "{key}" for {message.DESCRIPTOR.full_name}.')
        target = getattr(message, field.name)
        if field.message_type is None:
            if field.type == FieldDescriptor.TYPE_BYTES:
                setattr(message, field.name, bytes.fromhex(item or ""))
            else:
                scalars[key] = item
        elif field.message_type.full_name == ANY_TYPE:
            if _is_repeated(field):
                target.extend(to_any(entry) for entry in item)
            else:
                target.CopyFrom(to_any(item))
        elif field.message_type.full_name == DURATION_TYPE:
            target.seconds = int(item.get("seconds") or 0)
            target.nanos = int(item.get("nanos") or 0)
        elif _is_repeated(field):
            for entry in item:
                _fill(target.add(), entry)
        else:
            target.SetInParent()
            _fill(target, item)
    ParseDict(scalars, message)


def build_message(type_url: str, value: Dict[str, Any]) -> Message:
    message = resolve_message_class(type_url)()
    try:
        _fill(message, value)
    except ManifestMCPError:
        raise
    except (ParseError, ValueError, TypeError, AttributeError) as exc:
        raise _fail(f"Could not encode {type_url}: {error_message(exc)}", {"typeUrl": type_url}) from exc
    return message


class LocalSigner:
    """``OfflineSigner`` holding a cosmpy ``LocalWallet`` derived from a mnemonic."""

    def __init__(self, wallet: LocalWallet) -> None:
        self._wallet = wallet

    @classmethod
    def from_mnemonic(cls, mnemonic: str, prefix: str) -> "LocalSigner":
        return cls(LocalWallet.from_mnemonic(mnemonic, prefix=prefix))

    @property
    def address(self) -> str:
        return str(self._wallet.address())

    @property
    def public_key_bytes(self) -> bytes:
        return self._wallet.public_key().public_key_bytes

    async def get_accounts(self) -> List[Dict[str, Any]]:
        return [{"address": self.address, "algo": "secp256k1", "pubkey": self.public_key_bytes}]

    async def sign(self, sign_doc: Dict[str, Any]) -> bytes:
        """Encode, sign (SIGN_MODE_DIRECT) and return serialized ``TxRaw`` bytes."""
        body = TxBody(memo=sign_doc.get("memo") or "")
        body.messages.extend(to_any(message) for message in sign_doc["messages"])

        fee = sign_doc.get("fee") or {}
        public_key = AnyMessage(
            type_url=SECP256K1_PUBKEY_TYPE_URL,
            value=PubKey(key=self.public_key_bytes).SerializeToString(),
        )
        auth_info = AuthInfo(
            signer_infos=[
                SignerInfo(
                    public_key=public_key,
                    mode_info=ModeInfo(single=ModeInfo.Single(mode=SignMode.SIGN_MODE_DIRECT)),
                    sequence=int(sign_doc["sequence"]),
                )
            ],
            fee=Fee(
                amount=[Coin(denom=coin["denom"], amount=coin["amount"]) for coin in fee.get("amount", [])],
                gas_limit=int(fee.get("gas") or 0),
            ),
        )

        body_bytes = body.SerializeToString()
        auth_info_bytes = auth_info.SerializeToString()
        doc = SignDoc(
            body_bytes=body_bytes,
            auth_info_bytes=auth_info_bytes,
            chain_id=sign_doc["chain_id"],
            account_number=int(sign_doc["account_number"]),
        )
        signature = self._wallet.signer().sign(doc.SerializeToString(), deterministic=True, canonicalise=True)
        logger.debug("signed tx messages=%d", len(body.messages))
        return TxRaw(body_bytes=body_bytes, auth_info_bytes=auth_info_bytes, signatures=[signature]).SerializeToString()


def local_signer_factory(mnemonic: str, prefix: str) -> LocalSigner:
    """``signer_factory`` for ``MnemonicWalletProvider``."""
    return LocalSigner.from_mnemonic(mnemonic, prefix)
