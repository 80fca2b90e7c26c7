"""FastAPI application exposing the Manifest MCP tools over HTTP and JSON-RPC."""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from manifest_mcp.client import default_manager_cache
from manifest_mcp.config import ManifestConfig, default_config, load_mnemonic
from manifest_mcp.errors import ManifestMCPError
from manifest_mcp.local_signer import local_signer_factory
from manifest_mcp.mcp import ManifestMCPService
from manifest_mcp.metrics import default_metrics
from manifest_mcp.modules import MODULE_KINDS
from manifest_mcp.rate_limiter import PerKeyRateLimiter
from manifest_mcp.wallet import MnemonicWalletProvider, UnconfiguredWalletProvider, WalletProvider

logger = logging.getLogger(__name__)

HEALTH_STATUS = {"status": "ok"}
APP_VERSION = "0.1.0"
MCP_SERVER_NAME = "manifest-mcp-server"
MCP_SERVER_VERSION = APP_VERSION


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "message": record.getMessage(),
            "name": record.name,
        }
        for key in ("tool", "request_id", "error"):
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload)


def configure_logging(config: ManifestConfig) -> None:
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    if config.log_format.lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(level=level)


def _default_wallet(config: ManifestConfig) -> WalletProvider:
    mnemonic = load_mnemonic()
    if not mnemonic:
        logger.info("no mnemonic configured; serving queries only")
        return UnconfiguredWalletProvider()
    return MnemonicWalletProvider(config, mnemonic, signer_factory=local_signer_factory)


def _default_service(config: ManifestConfig) -> ManifestMCPService:
    return ManifestMCPService(config, _default_wallet(config))


def _jsonrpc_success_payload(rpc_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result}


def _jsonrpc_error_payload(rpc_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": code, "message": message}}


def _wrap_tool_result(result: Any) -> Dict[str, Any]:
    """
    Shape tool outputs into MCP-friendly content array.
    """
    text_repr = json.dumps(result, indent=2, ensure_ascii=True, default=str)
    wrapped: Dict[str, Any] = {
        "content": [{"type": "text", "text": text_repr}],
        "structuredContent": result,
    }
    if isinstance(result, dict) and result.get("error") is True:
        wrapped["isError"] = True
    return wrapped


def create_app(service: Optional[ManifestMCPService] = None, config: Optional[ManifestConfig] = None) -> FastAPI:
    """Build the HTTP app around ``service`` (defaults to a query-only service)."""
    config = config or (service.config if service is not None else default_config)
    service = service or _default_service(config)
    rate_limiter = PerKeyRateLimiter(
        rate_per_sec=config.tool_rate_limit_qps,
        per_tool=config.per_tool_rate_limits,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await default_manager_cache.aclose()

    app = FastAPI(
        title="Manifest MCP Server",
        description="Query and transaction tools for the Manifest chain, for LLM agents.",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.rate_limiter = rate_limiter

    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.time()
        default_metrics.incr_request()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000
        default_metrics.record_duration(request_id, duration_ms)
        response.headers["X-Request-ID"] = request_id
        return response

    def _log_tool_result(tool_name: str, result: Any, request_id: Optional[str] = None) -> None:
        if isinstance(result, dict) and result.get("error") is True:
            logger.warning(
                "tool=%s outcome=error code=%s request_id=%s",
                tool_name,
                result.get("code"),
                request_id,
                extra={"tool": tool_name, "request_id": request_id, "error": result.get("code")},
            )
            default_metrics.record_tool(tool_name, success=False)
        else:
            logger.info(
                "tool=%s outcome=success request_id=%s",
                tool_name,
                request_id,
                extra={"tool": tool_name, "request_id": request_id},
            )
            default_metrics.record_tool(tool_name, success=True)

    async def _enforce_rate_limit(tool_name: str, rpc_id: Any = None) -> Optional[JSONResponse]:
        allowed = await app.state.rate_limiter.allow(tool_name)
        if not allowed:
            logger.warning("tool=%s outcome=rate_limited", tool_name, extra={"tool": tool_name})
            default_metrics.incr_rate_limited()
            return JSONResponse(status_code=429, content=_jsonrpc_error_payload(rpc_id, 429, "Rate limit exceeded"))
        return None

    @app.get("/health")
    async def health() -> JSONResponse:
        """Lightweight health endpoint for monitoring."""
        return JSONResponse(content=HEALTH_STATUS)

    @app.get("/metrics")
    async def metrics() -> JSONResponse:
        """Return in-process metrics snapshot."""
        return JSONResponse(content=default_metrics.snapshot())

    @app.get("/modules")
    async def modules() -> JSONResponse:
        return JSONResponse(content=service.registry.get_available_modules())

    @app.get("/modules/{kind}/{module}")
    async def module_subcommands(kind: str, module: str) -> JSONResponse:
        if kind not in MODULE_KINDS:
            return JSONResponse(status_code=404, content={"error": f'Unknown module type: "{kind}"'})
        try:
            subcommands = service.registry.get_module_subcommands(kind, module)
        except ManifestMCPError as exc:
            return JSONResponse(status_code=404, content=exc.to_dict())
        return JSONResponse(content={"type": kind, "module": module, "subcommands": subcommands})

    @app.post("/mcp")
    async def mcp_gateway(request: Request) -> Response:
        """
        Minimal JSON-RPC gateway for MCP clients.

        Supported methods:
          - initialize
          - list_tools / tools/list
          - call_tool / tools/call
          - notifications/initialized
        """
        request_id = getattr(request.state, "request_id", None)

        def _error(rpc_id: Any, code: int, message: str, status_code: int = 200) -> JSONResponse:
            logger.debug("mcp error code=%s request_id=%s", code, request_id)
            return JSONResponse(status_code=status_code, content=_jsonrpc_error_payload(rpc_id, code, message))

        def _success(rpc_id: Any, result: Any) -> JSONResponse:
            return JSONResponse(content=_jsonrpc_success_payload(rpc_id, result))

        try:
            body = await request.json()
        except ValueError:
            return _error(None, -32700, "Parse error", status_code=400)
        if not isinstance(body, dict):
            return _error(None, -32600, "Invalid request", status_code=400)

        method = body.get("method")
        rpc_id = body.get("id")
        params = body.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return _error(rpc_id, -32602, "Invalid params")
        if not method:
            return _error(rpc_id, -32600, "Invalid request")

        if method == "initialize":
            protocol_version = params.get("protocolVersion")
            if not isinstance(protocol_version, str) or not protocol_version:
                return _error(rpc_id, -32602, "Invalid params")
            return _success(
                rpc_id,
                {
                    "protocolVersion": protocol_version,
                    "serverInfo": {"name": MCP_SERVER_NAME, "version": MCP_SERVER_VERSION},
                    "capabilities": {"tools": {"listChanged": False}},
                },
            )

        if method in ("list_tools", "tools/list"):
            limited = await _enforce_rate_limit("list_tools", rpc_id)
            return limited or _success(rpc_id, {"tools": service.list_tools()})

        if method in ("call_tool", "tools/call"):
            tool_name = params.get("tool") or params.get("name")
            tool_params = params.get("params")
            if tool_params is None:
                tool_params = params.get("arguments") or {}
            if not isinstance(tool_name, str) or not tool_name.strip() or not isinstance(tool_params, dict):
                return _error(rpc_id, -32602, "Invalid params")
            limited = await _enforce_rate_limit(tool_name, rpc_id)
            if limited:
                return limited
            result = await service.call_tool(tool_name, tool_params)
            _log_tool_result(tool_name, result, request_id)
            return _success(rpc_id, _wrap_tool_result(result))

        if method in ("notifications/initialized", "initialized"):
            return Response(status_code=204)

        return _error(rpc_id, -32601, "Method not found")

    return app


configure_logging(default_config)
app = create_app()

# Run with: uvicorn manifest_mcp.server:app --reload
