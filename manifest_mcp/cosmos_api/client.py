"""
Thin HTTP client for a Cosmos SDK node's REST (gRPC-gateway) API.

Transport failures and node error bodies are mapped onto ``ManifestMCPError``
so the dispatcher can classify them for retry. Request encoding for
transactions is not done here; callers hand over already signed bytes.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from manifest_mcp.config import ManifestConfig, default_config
from manifest_mcp.errors import ErrorCode, ManifestMCPError

logger = logging.getLogger(__name__)

BROADCAST_MODE_SYNC = "BROADCAST_MODE_SYNC"

INSUFFICIENT_FUNDS_SIGNALS = ("insufficient funds", "insufficient fee", "spendable balance")
INVALID_ADDRESS_SIGNALS = ("decoding bech32 failed", "invalid address", "invalid bech32")


def _normalize_url(url: str) -> str:
    return url.rstrip("/")


def encode_path_segment(value: str) -> str:
    return quote(str(value), safe="")


class CosmosApiClient:
    """Async client for the node endpoints the handlers use."""

    def __init__(
        self,
        config: ManifestConfig | None = None,
        *,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or default_config
        self.base_url = _normalize_url(self.config.rpc_url)
        self._client: Optional[httpx.AsyncClient] = async_client
        self._owns_client = async_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.config.timeout)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _map_error(self, status_code: int, message: Optional[str], path: str) -> ManifestMCPError:
        details = {"status": status_code, "path": path}
        text = message or "no error message"
        lowered = text.lower()

        if status_code == 429:
            return ManifestMCPError(ErrorCode.QUERY_FAILED, f"HTTP 429 Too Many Requests: {text}", details)
        if status_code >= 500:
            return ManifestMCPError(ErrorCode.QUERY_FAILED, f"HTTP {status_code} from node: {text}", details)

        if any(signal in lowered for signal in INSUFFICIENT_FUNDS_SIGNALS):
            return ManifestMCPError(ErrorCode.INSUFFICIENT_FUNDS, f"Insufficient funds: {text}", details)
        if any(signal in lowered for signal in INVALID_ADDRESS_SIGNALS):
            return ManifestMCPError(ErrorCode.INVALID_ADDRESS, f"Invalid address: {text}", details)
        # Client errors never become valid by repeating them.
        return ManifestMCPError(
            ErrorCode.QUERY_FAILED, f"HTTP {status_code} from node: {text}", details, retryable=False
        )

    def _process_response(self, response: httpx.Response, path: str) -> Any:
        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            message: Optional[str] = None
            if isinstance(data, dict):
                raw_message = data.get("message") or data.get("error")
                if isinstance(raw_message, str):
                    message = raw_message
            raise self._map_error(response.status_code, message, path)

        if not isinstance(data, dict):
            raise ManifestMCPError(
                ErrorCode.QUERY_FAILED,
                "Unexpected response from node.",
                {"status": response.status_code, "path": path},
            )
        return data

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            if method == "POST":
                response = await client.post(path, json=payload)
            else:
                response = await client.get(path, params=params)
        except httpx.RequestError as exc:
            logger.warning("node unreachable for path %s", path)
            raise ManifestMCPError(
                ErrorCode.RPC_CONNECTION_FAILED,
                f"Network error contacting node {self.base_url}: {exc}",
                {"rpcUrl": self.base_url},
            ) from exc
        return self._process_response(response, path)

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", path, payload=payload)

    async def fetch_node_info(self) -> Dict[str, Any]:
        """Retrieve the node's network id and version information."""
        return await self.get("/cosmos/base/tendermint/v1beta1/node_info")

    async def fetch_account(self, address: str) -> Dict[str, Any]:
        """Retrieve account number and sequence for ``address``."""
        data = await self.get(f"/cosmos/auth/v1beta1/accounts/{encode_path_segment(address)}")
        return data.get("account") or {}

    async def simulate(self, tx_bytes: bytes) -> Dict[str, Any]:
        return await self.post(
            "/cosmos/tx/v1beta1/simulate",
            {"tx_bytes": base64.b64encode(tx_bytes).decode("ascii")},
        )

    async def broadcast_tx(self, tx_bytes: bytes, mode: str = BROADCAST_MODE_SYNC) -> Dict[str, Any]:
        data = await self.post(
            "/cosmos/tx/v1beta1/txs",
            {"tx_bytes": base64.b64encode(tx_bytes).decode("ascii"), "mode": mode},
        )
        return data.get("tx_response") or {}

    async def fetch_tx(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Return the indexed transaction response, or None while it is not yet in a block."""
        try:
            data = await self.get(f"/cosmos/tx/v1beta1/txs/{encode_path_segment(tx_hash)}")
        except ManifestMCPError as exc:
            if exc.details and exc.details.get("status") == 404:
                return None
            raise
        return data.get("tx_response") or None
