#!/usr/bin/env python3
"""
Signalbox - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules (registry, router, reaper) for the app's lifetime
3. Exposes the relay WebSocket and a few HTTP endpoints

All business logic is in the modules, following black box principles.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request, Response, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.websockets import WebSocketDisconnect

from signalbox import __version__
from signalbox.logging_config import configure_logging
from signalbox.modules.config import ConfigModule, get_config
from signalbox.modules.relay import RelayRouter, WebSocketEndpoint
from signalbox.modules.session import SessionReaper, SessionRegistry

logger = logging.getLogger(__name__)

routes = APIRouter()


def build_lifespan(config: ConfigModule):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle - the registry lives exactly as long as the app.
        """
        logger.info("Starting Signalbox relay...")

        registry = SessionRegistry()
        router = RelayRouter(registry, notify_on_expiry=config.get("notify_on_expiry", False))
        reaper = SessionReaper(
            registry,
            sweep_interval=config.get("sweep_interval"),
            max_age=config.get("session_max_age"),
            on_expired=router.notify_expired,
        )

        app.state.config = config
        app.state.registry = registry
        app.state.router = router
        app.state.reaper = reaper

        reaper.start()
        logger.info(f"Signalbox relay started on port {config.get('port')}")

        yield

        # Shutdown
        logger.info("Shutting down Signalbox relay...")
        await reaper.stop()
        dropped = await registry.clear()
        logger.info(f"Signalbox relay shutdown complete ({dropped} sessions dropped)")

    return lifespan


def create_app(config: Optional[ConfigModule] = None) -> FastAPI:
    """Build the FastAPI application around a configuration."""
    config = config or get_config()

    app = FastAPI(
        title="Signalbox",
        description="Rendezvous and signaling relay for peer-to-peer file transfer",
        version=__version__,
        lifespan=build_lifespan(config),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get("cors_origins", ["*"]),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes)

    @app.exception_handler(ValueError)
    async def validation_error_handler(request, exc):
        """Handle validation errors."""
        logger.error(f"Validation error: {exc}")
        return JSONResponse(status_code=400, content={"error": str(exc)})

    # Static client last so it never shadows the API or WebSocket routes
    static_dir = config.get("static_dir")
    if static_dir:
        if os.path.isdir(static_dir):
            app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
            logger.info(f"Serving files from {static_dir}")
        else:
            logger.warning(f"STATIC_DIR {static_dir} does not exist, static hosting disabled")

    return app


# Relay WebSocket


@routes.websocket("/ws")
@routes.websocket("/")
async def relay_socket(ws: WebSocket):
    """
    One relay connection.

    Frames are handled one at a time in arrival order. Closing the socket is
    the only way a connection ends; disconnect cleanup always runs.
    """
    router: RelayRouter = ws.app.state.router
    config: ConfigModule = ws.app.state.config

    await ws.accept()
    endpoint = WebSocketEndpoint(ws, send_timeout=config.get("send_timeout"))
    logger.info(f"New WebSocket connection {endpoint.endpoint_id}")

    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break

            frame = message.get("text")
            if frame is None:
                frame = message.get("bytes")
            if frame is None:
                continue

            await router.handle_frame(endpoint, frame)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception(f"WebSocket error on connection {endpoint.endpoint_id}")
    finally:
        endpoint.mark_closed()
        await router.handle_disconnect(endpoint)
        logger.info(f"WebSocket connection {endpoint.endpoint_id} closed")


# Session administration


@routes.delete("/sessions/{pin}", status_code=204)
async def end_session(pin: str, request: Request):
    """
    End a session early.

    Returns:
        204: Session removed
        404: No session holds this pin
    """
    registry = _registry(request)
    if not await registry.remove_session(pin):
        raise HTTPException(404, "Session not found")

    logger.info(f"Session {pin} ended via API")
    return Response(status_code=204)


# Health and Monitoring


@routes.get("/healthz")
async def healthz():
    """Liveness probe."""
    return {"status": "ok"}


@routes.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns:
        200: Service healthy
        503: Service unhealthy
    """
    registry = getattr(request.app.state, "registry", None)
    reaper = getattr(request.app.state, "reaper", None)

    if registry is None:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "modules": "not initialized"},
        )

    return {
        "status": "healthy",
        "modules": "initialized",
        "reaper": "running" if reaper and reaper.running else "stopped",
        "sessions": len(registry),
        "version": __version__,
    }


@routes.get("/metrics")
async def metrics(request: Request):
    """
    Prometheus-compatible metrics endpoint.

    Returns basic metrics about the registry.
    """
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        return Response(content="", status_code=503)

    stats = await registry.stats()

    metrics_text = f"""# HELP signalbox_sessions_total Number of live rendezvous sessions
# TYPE signalbox_sessions_total gauge
signalbox_sessions_total {stats['total']}
# HELP signalbox_sessions_open Sessions waiting for a receiver
# TYPE signalbox_sessions_open gauge
signalbox_sessions_open {stats['open']}
# HELP signalbox_sessions_paired Sessions with both endpoints bound
# TYPE signalbox_sessions_paired gauge
signalbox_sessions_paired {stats['paired']}
"""

    return Response(content=metrics_text, media_type="text/plain")


def _registry(request: Request) -> SessionRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(503, "Service not initialized")
    return registry


# Configure logging with health check suppression
configure_logging(get_config().get("log_level"))

app = create_app()
