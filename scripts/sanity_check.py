"""Minimal sanity checks for the Manifest MCP tools against a live node."""

from __future__ import annotations

import asyncio
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from manifest_mcp.config import create_validated_config  # noqa: E402
from manifest_mcp.mcp import ManifestMCPService  # noqa: E402
from manifest_mcp.wallet import UnconfiguredWalletProvider  # noqa: E402

# Any funded public address on the target chain; override via env.
SAMPLE_ADDRESS = os.getenv("MANIFEST_SAMPLE_ADDRESS")
SAMPLE_DENOM = os.getenv("MANIFEST_SAMPLE_DENOM", "umfx")


async def main() -> None:
    config = create_validated_config(
        chain_id=os.getenv("MANIFEST_CHAIN_ID", "manifest-ledger-testnet"),
        rpc_url=os.getenv("MANIFEST_RPC_URL", "http://localhost:1317"),
    )
    service = ManifestMCPService(config, UnconfiguredWalletProvider())
    try:
        print("Modules:", await service.call_tool("list_modules"))
        print("Bank params:", await service.call_tool("cosmos_query", {"module": "bank", "subcommand": "params"}))
        print(
            "Staking pool:",
            await service.call_tool("cosmos_query", {"module": "staking", "subcommand": "pool"}),
        )
        print(
            "Supply of:",
            await service.call_tool(
                "cosmos_query", {"module": "bank", "subcommand": "supply-of", "args": [SAMPLE_DENOM]}
            ),
        )
        if SAMPLE_ADDRESS:
            print(
                "Balances:",
                await service.call_tool(
                    "cosmos_query",
                    {"module": "bank", "subcommand": "balances", "args": [SAMPLE_ADDRESS, "--limit", "5"]},
                ),
            )
    finally:
        await service.manager.aclose()


if __name__ == "__main__":
    asyncio.run(main())
