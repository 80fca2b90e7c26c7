"""Cosmos SDK node REST client."""

from manifest_mcp.cosmos_api.client import CosmosApiClient, encode_path_segment

__all__ = ["CosmosApiClient", "encode_path_segment"]
