"""
Manifest MCP server package.

This package exposes LLM-friendly query and transaction tools for the
Manifest chain, backed by a Cosmos SDK node's REST API. See DESIGN.md for
full details.
"""

__all__ = ["config"]
