"""aiohttp application exposing the boredom JSON API."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from aiohttp import web
from aiohttp.log import access_logger

from pyboredom._auth import check_credentials
from pyboredom._redact import redact_for_log
from pyboredom.config import BoredomConfig
from pyboredom.exceptions import AuthFailureError, BoredomError, InvalidArgumentError
from pyboredom.service import BoredomService

_logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", BoredomConfig)
SERVICE_KEY = web.AppKey("service", BoredomService)

routes = web.RouteTableDef()


async def _read_json_object(request: web.Request) -> dict[str, Any]:
    """Parse the request body as a JSON object, raising ``ValueError`` otherwise."""
    text = await request.text()
    body = json.loads(text) if text.strip() else {}
    if not isinstance(body, dict):
        raise ValueError("request body must be a JSON object")
    return body


@routes.get("/api/boredom")
async def get_boredom(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    try:
        snapshot = await service.get_current_level()
    except BoredomError:
        _logger.exception("Error fetching boredom state")
        return web.json_response({"error": "Failed to fetch boredom state"}, status=500)
    return web.json_response(snapshot.to_wire())


@routes.post("/api/boredom/set")
async def set_boredom(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    try:
        body = await _read_json_object(request)
    except ValueError:
        return web.json_response({"success": False, "message": "Request body must be a JSON object"}, status=400)

    try:
        new_level = await service.set_level(body.get("level"))
    except InvalidArgumentError as exc:
        _logger.info("Rejected boredom level %r: %s", body.get("level"), exc)
        return web.json_response({"success": False, "message": str(exc)}, status=400)
    except BoredomError:
        _logger.exception("Error setting boredom level")
        return web.json_response({"success": False, "message": "Failed to update boredom level"}, status=500)
    return web.json_response({"success": True, "newLevel": new_level})


@routes.post("/api/boredom/reset")
async def reset_boredom(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    try:
        new_level = await service.reset()
    except BoredomError:
        _logger.exception("Error resetting boredom state")
        return web.json_response({"success": False, "message": "Failed to reset boredom state"}, status=500)
    return web.json_response({"success": True, "newLevel": new_level})


@routes.post("/api/auth/check")
async def auth_check(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    try:
        body = await _read_json_object(request)
    except ValueError:
        body = {}
    _logger.debug("Auth check body=%s", redact_for_log(body))

    try:
        check_credentials(config, body.get("username"), body.get("password"))
    except AuthFailureError as exc:
        if exc.missing:
            return web.json_response({"authenticated": False, "message": str(exc)}, status=400)
        return web.json_response({"authenticated": False}, status=401)
    return web.json_response({"authenticated": True})


@routes.get("/healthz")
async def healthz(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    return web.json_response({"status": "ok", "cache": service.cache.mode})


async def _service_ctx(app: web.Application) -> AsyncIterator[None]:
    service = app[SERVICE_KEY]
    await service.start()
    yield
    await service.close()


def create_app(config: BoredomConfig, *, service: BoredomService | None = None) -> web.Application:
    """Build the application; the service is started and closed with it."""
    app = web.Application()
    app[CONFIG_KEY] = config
    app[SERVICE_KEY] = service if service is not None else BoredomService.from_config(config)
    app.add_routes(routes)
    app.cleanup_ctx.append(_service_ctx)
    return app


def run(config: BoredomConfig) -> None:
    """Serve the API until interrupted."""
    app = create_app(config)
    _logger.info("Boredom API listening on %s:%d", config.host, config.port)
    web.run_app(
        app,
        host=config.host,
        port=config.port,
        access_log=access_logger if config.access_log else None,
        print=None,
    )
