"""
Wallet and signer collaborators.

Key derivation and signing are delegated: a ``MnemonicWalletProvider`` is given
a ``signer_factory`` that turns a mnemonic into an ``OfflineSigner`` (the server
uses ``manifest_mcp.local_signer``). This module only manages the lifecycle
around it.

Dropping the mnemonic reference on ``disconnect()`` lets it be garbage
collected; it does not zero the memory that held it.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Union, runtime_checkable

from manifest_mcp.config import DEFAULT_ADDRESS_PREFIX, ManifestConfig
from manifest_mcp.errors import ErrorCode, ManifestMCPError, error_message

logger = logging.getLogger(__name__)


@runtime_checkable
class OfflineSigner(Protocol):
    async def get_accounts(self) -> List[Dict[str, Any]]:
        """Return ``[{"address": ..., "pubkey": ...}, ...]``; the first account signs."""

    async def sign(self, sign_doc: Dict[str, Any]) -> bytes:
        """Return the signed, encoded transaction bytes for ``sign_doc``."""


@runtime_checkable
class WalletProvider(Protocol):
    async def get_address(self) -> str: ...

    async def get_signer(self) -> OfflineSigner: ...


SignerFactory = Callable[[str, str], Union[OfflineSigner, Awaitable[OfflineSigner]]]


class UnconfiguredWalletProvider:
    """Stand-in used when no signer is wired up; every call fails."""

    MESSAGE = (
        "No wallet configured. Set MANIFEST_MNEMONIC or MANIFEST_MNEMONIC_FILE to enable "
        "account info and transactions."
    )

    async def connect(self) -> None:
        raise ManifestMCPError(ErrorCode.WALLET_NOT_CONNECTED, self.MESSAGE)

    async def disconnect(self) -> None:
        return None

    async def get_address(self) -> str:
        raise ManifestMCPError(ErrorCode.WALLET_NOT_CONNECTED, self.MESSAGE)

    async def get_signer(self) -> OfflineSigner:
        raise ManifestMCPError(ErrorCode.WALLET_NOT_CONNECTED, self.MESSAGE)


class MnemonicWalletProvider:
    """
    Wallet backed by a mnemonic held in memory until ``disconnect()``.

    A disconnected instance cannot be reconnected; build a new one instead.
    """

    def __init__(
        self,
        config: ManifestConfig,
        mnemonic: str,
        *,
        signer_factory: SignerFactory,
    ) -> None:
        self._prefix = config.address_prefix or DEFAULT_ADDRESS_PREFIX
        self._mnemonic: Optional[str] = mnemonic
        self._signer_factory = signer_factory
        self._signer: Optional[OfflineSigner] = None
        self._address: Optional[str] = None
        self._disconnected = False

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    async def _init_wallet(self) -> None:
        if self._disconnected:
            raise ManifestMCPError(
                ErrorCode.WALLET_NOT_CONNECTED,
                "Wallet has been disconnected and cannot be reconnected. "
                "Create a new MnemonicWalletProvider instance.",
            )
        if self._signer is not None:
            return
        if not self._mnemonic:
            raise ManifestMCPError(
                ErrorCode.WALLET_NOT_CONNECTED,
                "Mnemonic has been cleared. Create a new MnemonicWalletProvider instance.",
            )

        try:
            signer = self._signer_factory(self._mnemonic, self._prefix)
            if isinstance(signer, Awaitable):
                signer = await signer
            accounts = await signer.get_accounts()
            if not accounts:
                raise ValueError("No accounts derived from mnemonic")
            address = accounts[0]["address"]
        except Exception as exc:
            raise ManifestMCPError(
                ErrorCode.INVALID_MNEMONIC,
                f"Failed to create wallet from mnemonic: {error_message(exc)}",
            ) from exc

        self._signer = signer
        self._address = address
        logger.info("wallet connected prefix=%s", self._prefix)

    async def connect(self) -> None:
        await self._init_wallet()

    async def disconnect(self) -> None:
        self._mnemonic = None
        self._signer = None
        self._address = None
        self._disconnected = True

    async def get_address(self) -> str:
        await self._init_wallet()
        if not self._address:
            raise ManifestMCPError(ErrorCode.WALLET_NOT_CONNECTED, "Wallet failed to initialize")
        return self._address

    async def get_signer(self) -> OfflineSigner:
        await self._init_wallet()
        if self._signer is None:
            raise ManifestMCPError(ErrorCode.WALLET_NOT_CONNECTED, "Wallet failed to initialize")
        return self._signer
