# site_audit/server.py
"""
HTTP front end: ``POST /analyze`` streams scan progress as server-sent events.

Every request that passes validation receives zero or more progress frames
followed by exactly one terminal frame (result or ``{"error": ...}``).
"""
from __future__ import annotations

import enum
import json
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

from aiohttp import web
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from site_audit import __version__
from site_audit.aggregator import ScanReport, ScanStatistics
from site_audit.config import AuditConfig
from site_audit.engine import ScanEngine
from site_audit.logger import get_logger
from site_audit.minifier import minify_assets

logger = get_logger("server")

EngineFactory = Callable[[AuditConfig], ScanEngine]
CONFIG_KEY = web.AppKey("config", AuditConfig)
ENGINE_FACTORY_KEY = web.AppKey("engine_factory", EngineFactory)


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str

    @field_validator("url", mode="before")
    def _check_url(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("url must be a non-empty string")
        v = v.strip()
        parts = urlsplit(v)
        if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
            raise ValueError("url must be an absolute http(s) URL")
        return v


class MinifyRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    js_urls: List[str] = Field(default_factory=list, alias="jsUrls")
    css_urls: List[str] = Field(default_factory=list, alias="cssUrls")

    @field_validator("js_urls", "css_urls", mode="before")
    def _check_urls(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("jsUrls and cssUrls must be lists of URLs")
        for item in v:
            parts = urlsplit(item) if isinstance(item, str) else None
            if parts is None or parts.scheme.lower() not in ("http", "https") or not parts.hostname:
                raise ValueError(f"not an absolute http(s) URL: {item!r}")
        return v


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    if err.get("type") == "missing":
        return "URL is required"
    return str(err.get("msg", "invalid request")).removeprefix("Value error, ")


class ChannelState(enum.Enum):
    OPEN = "open"
    STREAMING = "streaming"
    TERMINATED = "terminated"


class ProgressChannel:
    """Writes SSE frames onto one prepared StreamResponse."""

    def __init__(self, response: web.StreamResponse) -> None:
        self.response = response
        self.state = ChannelState.OPEN
        self.disconnected = False

    async def _write(self, payload: Dict[str, Any]) -> None:
        if self.disconnected:
            return
        frame = f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")
        try:
            await self.response.write(frame)
        except ConnectionError as exc:
            self.disconnected = True
            logger.info("Client went away: %s", exc)

    async def send_progress(self, stats: ScanStatistics) -> None:
        if self.state is ChannelState.TERMINATED:
            raise RuntimeError("progress frame after terminal frame")
        self.state = ChannelState.STREAMING
        await self._write(stats.to_dict())

    async def terminate(self, payload: Dict[str, Any]) -> None:
        if self.state is ChannelState.TERMINATED:
            raise RuntimeError("channel already terminated")
        self.state = ChannelState.TERMINATED
        await self._write(payload)
        if not self.disconnected:
            try:
                await self.response.write_eof()
            except ConnectionError:
                self.disconnected = True

    async def send_result(self, report: ScanReport) -> None:
        await self.terminate(report.terminal_payload())

    async def send_error(self, message: str) -> None:
        await self.terminate({"error": message})


async def analyze(request: web.Request) -> web.StreamResponse:
    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"error": "Request body must be JSON"}, status=400)
    if not isinstance(body, dict):
        return web.json_response({"error": "Request body must be a JSON object"}, status=400)
    try:
        payload = AnalyzeRequest.model_validate(body)
    except ValidationError as exc:
        return web.json_response({"error": _validation_message(exc)}, status=400)

    config = request.app[CONFIG_KEY]
    engine = request.app[ENGINE_FACTORY_KEY](config)

    response = web.StreamResponse(
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
    )
    await response.prepare(request)
    channel = ProgressChannel(response)
    logger.info("Scan requested for %s", payload.url)

    report: Optional[ScanReport] = None
    scan = engine.iter_scan(payload.url)
    try:
        async for item in scan:
            if isinstance(item, ScanReport):
                report = item
                continue
            await channel.send_progress(item)
            if channel.disconnected and config.cancel_on_disconnect:
                logger.info("Cancelling scan of %s after client disconnect", payload.url)
                break
    except Exception as exc:
        logger.exception("Scan of %s failed", payload.url)
        await channel.send_error(str(exc) or type(exc).__name__)
        return response
    finally:
        await scan.aclose()

    if report is None:
        await channel.send_error("scan cancelled")
    else:
        await channel.send_result(report)
    return response


async def minify(request: web.Request) -> web.Response:
    """Fetch the given JS/CSS files and return them minified with percent savings."""
    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"error": "Request body must be JSON"}, status=400)
    if not isinstance(body, dict):
        return web.json_response({"error": "Request body must be a JSON object"}, status=400)
    try:
        payload = MinifyRequest.model_validate(body)
    except ValidationError as exc:
        return web.json_response({"error": _validation_message(exc)}, status=400)

    config = request.app[CONFIG_KEY]
    try:
        result = await minify_assets(payload.js_urls, payload.css_urls, timeout=config.fetch_timeout)
    except Exception as exc:
        logger.exception("Minification failed")
        return web.json_response({"error": "Failed to minify code", "details": str(exc)}, status=500)
    return web.json_response(result.to_dict())


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "version": __version__})


CORS_HEADERS = {
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


async def preflight(request: web.Request) -> web.Response:
    return web.Response(status=204)


async def _add_cors_headers(request: web.Request, response: web.StreamResponse) -> None:
    origins = request.app[CONFIG_KEY].cors_origins
    origin = request.headers.get("Origin")
    if not origin or ("*" not in origins and origin not in origins):
        return
    response.headers["Access-Control-Allow-Origin"] = "*" if "*" in origins else origin
    response.headers.update(CORS_HEADERS)


def create_app(config: AuditConfig, *, engine_factory: Optional[EngineFactory] = None) -> web.Application:
    """Build the aiohttp application serving the scan endpoints."""
    app = web.Application()
    app.on_response_prepare.append(_add_cors_headers)
    app[CONFIG_KEY] = config
    app[ENGINE_FACTORY_KEY] = engine_factory or ScanEngine
    for path in ("/analyze", "/api/analyze"):
        app.router.add_post(path, analyze)
        app.router.add_route("OPTIONS", path, preflight)
    for path in ("/minify", "/api/minify"):
        app.router.add_post(path, minify)
        app.router.add_route("OPTIONS", path, preflight)
    app.router.add_get("/health", health)
    return app


def run_server(config: AuditConfig, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve until interrupted."""
    host = host or config.host
    port = port or config.port
    logger.info("SiteAudit server listening on http://%s:%d", host, port)
    web.run_app(create_app(config), host=host, port=port, print=None)


__all__ = ["create_app", "run_server", "ProgressChannel", "ChannelState", "AnalyzeRequest", "MinifyRequest"]
