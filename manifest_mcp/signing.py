"""
Signing client: account lookup, gas estimation, broadcast and confirmation.

Transaction encoding and signatures belong to the ``OfflineSigner``; this
client builds the sign document, hands it over, and drives the node's REST
endpoints with the resulting bytes.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import time
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from manifest_mcp.config import ManifestConfig
from manifest_mcp.cosmos_api import CosmosApiClient
from manifest_mcp.errors import ErrorCode, ManifestMCPError, error_message
from manifest_mcp.retry import is_retryable_error
from manifest_mcp.wallet import OfflineSigner

logger = logging.getLogger(__name__)

GAS_MULTIPLIER = Decimal("1.4")
BROADCAST_TIMEOUT_SECONDS = 60.0
BROADCAST_POLL_INTERVAL_SECONDS = 3.0

GAS_PRICE_REGEX = re.compile(r"^([0-9]+(?:\.[0-9]+)?)([a-zA-Z][a-zA-Z0-9/_]*)$")

Message = Dict[str, Any]
Fee = Dict[str, Any]


def parse_gas_price(gas_price: str) -> Tuple[Decimal, str]:
    match = GAS_PRICE_REGEX.fullmatch(gas_price)
    if match is None:
        raise ManifestMCPError(
            ErrorCode.INVALID_CONFIG,
            f'Invalid gas price: "{gas_price}". Expected a number followed by a denom (e.g., "1.0umfx").',
        )
    return Decimal(match.group(1)), match.group(2)


def calculate_fee(gas_limit: int, gas_price: str) -> Fee:
    price, denom = parse_gas_price(gas_price)
    amount = math.ceil(price * gas_limit)
    return {"amount": [{"denom": denom, "amount": str(amount)}], "gas": str(gas_limit)}


def _account_numbers(account: Dict[str, Any]) -> Tuple[int, int]:
    # Vesting and module accounts nest the base account.
    base = account.get("base_account") or account.get("base_vesting_account", {}).get("base_account") or account
    return int(base.get("account_number") or 0), int(base.get("sequence") or 0)


class RestSigningClient:
    """Sign-and-broadcast over the node REST API with a delegated signer."""

    def __init__(
        self,
        api_client: CosmosApiClient,
        signer: OfflineSigner,
        config: ManifestConfig,
        *,
        poll_interval: float = BROADCAST_POLL_INTERVAL_SECONDS,
        broadcast_timeout: float = BROADCAST_TIMEOUT_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.api = api_client
        self.signer = signer
        self.config = config
        self.poll_interval = poll_interval
        self.broadcast_timeout = broadcast_timeout
        self._sleep = sleep

    async def _sign(
        self,
        sender: str,
        messages: List[Message],
        fee: Fee,
        memo: str,
    ) -> bytes:
        account = await self.api.fetch_account(sender)
        account_number, sequence = _account_numbers(account)
        sign_doc = {
            "chain_id": self.config.chain_id,
            "account_number": str(account_number),
            "sequence": str(sequence),
            "fee": fee,
            "memo": memo,
            "messages": messages,
        }
        return await self.signer.sign(sign_doc)

    async def simulate(self, sender: str, messages: List[Message], memo: str = "") -> int:
        """Return the gas the node reports for executing ``messages``."""
        try:
            tx_bytes = await self._sign(sender, messages, {"amount": [], "gas": "0"}, memo)
            result = await self.api.simulate(tx_bytes)
        except ManifestMCPError as exc:
            if exc.code in (ErrorCode.INSUFFICIENT_FUNDS, ErrorCode.INVALID_ADDRESS):
                raise
            raise ManifestMCPError(
                ErrorCode.TX_SIMULATION_FAILED,
                f"Transaction simulation failed: {exc.message}",
                exc.details,
                retryable=exc.retryable,
            ) from exc
        gas_used = (result.get("gas_info") or {}).get("gas_used")
        if gas_used is None:
            raise ManifestMCPError(ErrorCode.TX_SIMULATION_FAILED, "Simulation returned no gas estimate.")
        return int(gas_used)

    async def sign_and_broadcast(
        self,
        sender: str,
        messages: List[Message],
        fee: Union[str, Fee] = "auto",
        memo: str = "",
    ) -> Dict[str, Any]:
        if fee == "auto":
            gas_used = await self.simulate(sender, messages, memo)
            gas_limit = math.ceil(Decimal(gas_used) * GAS_MULTIPLIER)
            fee = calculate_fee(gas_limit, self.config.gas_price)

        tx_bytes = await self._sign(sender, messages, fee, memo)
        response = await self.api.broadcast_tx(tx_bytes)
        tx_hash = response.get("txhash")
        code = int(response.get("code") or 0)
        if code != 0:
            raw_log = response.get("raw_log") or ""
            error_code = (
                ErrorCode.INSUFFICIENT_FUNDS if "insufficient funds" in raw_log.lower() else ErrorCode.TX_BROADCAST_FAILED
            )
            raise ManifestMCPError(
                error_code,
                f"Broadcasting transaction failed with code {code} "
                f"(codespace: {response.get('codespace') or 'unknown'}). Log: {raw_log}",
                {"transactionHash": tx_hash, "code": code},
                retryable=False,
            )
        if not tx_hash:
            raise ManifestMCPError(ErrorCode.TX_BROADCAST_FAILED, "Node accepted the transaction but returned no hash.")

        logger.info("tx broadcast hash=%s messages=%d", tx_hash, len(messages))
        confirmed = await self._wait_for_tx(tx_hash)
        return {
            "transactionHash": confirmed.get("txhash") or tx_hash,
            "code": int(confirmed.get("code") or 0),
            "height": int(confirmed.get("height") or 0),
            "rawLog": confirmed.get("raw_log") or None,
            "gasUsed": int(confirmed.get("gas_used") or 0),
            "gasWanted": int(confirmed.get("gas_wanted") or 0),
            "events": confirmed.get("events") or [],
        }

    async def _wait_for_tx(self, tx_hash: str) -> Dict[str, Any]:
        deadline = time.monotonic() + self.broadcast_timeout
        while True:
            try:
                found: Optional[Dict[str, Any]] = await self.api.fetch_tx(tx_hash)
            except ManifestMCPError as exc:
                # The tx is already in the mempool; a flaky poll must not trigger a rebroadcast.
                if not is_retryable_error(exc):
                    raise
                logger.warning("tx poll failed hash=%s error=%s", tx_hash, error_message(exc))
                found = None
            if found is not None:
                return found
            if time.monotonic() >= deadline:
                raise ManifestMCPError(
                    ErrorCode.TX_CONFIRMATION_TIMEOUT,
                    f"Transaction {tx_hash} was submitted but was not yet found on the chain "
                    f"after {self.broadcast_timeout:g} seconds. Check its status later.",
                    {"transactionHash": tx_hash},
                    retryable=False,
                )
            await self._sleep(self.poll_interval)

    async def aclose(self) -> None:
        return None
