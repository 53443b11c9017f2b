"""
PulseSense Main Application
===========================

FastAPI entry point for the presence estimation service.

The core estimators own no timers. This module is the external driver:
    - Scanners push observations in through the ingest endpoints
      (or the mock scan source when ingest.backend == "mock")
    - One asyncio loop calls tick(now) on both estimators every
      service.tick_interval_ms and caches the cluster snapshot
    - Renderers pull snapshots through the query endpoints

Endpoints:
    GET  /                  - Service information
    GET  /health            - Liveness probe
    GET  /metrics           - Estimator and ingest counters
    POST /ingest/ble        - One BLE advertisement
    POST /ingest/wifi       - One Wi-Fi scan batch
    POST /yaw               - Compass heading sample
    PUT  /viewport          - Renderer viewport size
    GET  /clusters          - Cluster snapshot from the latest tick
    GET  /clusters/summary  - Cluster summary from the latest tick
    GET  /dots              - Projected tracker dots
    GET  /summary           - Tracker summary
    GET  /debug             - Tracker debug snapshot
    WS   /ws/dots           - Real-time dot stream
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse

from pulse_sense.config import settings
from pulse_sense.identity import EphemeralIdGenerator
from pulse_sense.ingest import MockScanSource, SignalIngestor
from pulse_sense.models.api import (
    BleAdvertisementMessage,
    ViewportMessage,
    WifiScanMessage,
    YawMessage,
)
from pulse_sense.models.signal import ClusterSnapshot
from pulse_sense.signals import SignalEngine, compute_cluster_summary
from pulse_sense.tracking import DeviceTracker, create_projector


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False

_engine: Optional[SignalEngine] = None
_tracker: Optional[DeviceTracker] = None
_ingestor: Optional[SignalIngestor] = None
_mock_source: Optional[MockScanSource] = None

_tick_task: Optional[asyncio.Task] = None
_mock_task: Optional[asyncio.Task] = None

_current_clusters: List[ClusterSnapshot] = []
_last_tick_ms: int = 0
_startup_time: float = 0.0

_tick_error_count: int = 0
_mock_error_count: int = 0


# =============================================================================
# Getters
# =============================================================================

def get_engine() -> Optional[SignalEngine]:
    return _engine

def get_tracker() -> Optional[DeviceTracker]:
    return _tracker

def get_ingestor() -> Optional[SignalIngestor]:
    return _ingestor

def get_current_clusters() -> List[ClusterSnapshot]:
    return _current_clusters


def _now_ms() -> int:
    return int(time.time() * 1000)


def _not_ready() -> JSONResponse:
    return JSONResponse({"error": "Service not initialized"}, status_code=503)


# =============================================================================
# Driving Loops
# =============================================================================

async def run_tick_loop() -> None:
    """Periodically age both estimators and cache the cluster snapshot."""
    global _current_clusters, _last_tick_ms, _tick_error_count

    interval = settings.service.tick_interval_ms / 1000.0
    logger.info(f"Tick loop started: interval={settings.service.tick_interval_ms}ms")

    while not _shutdown_flag:
        try:
            await asyncio.sleep(interval)
            if _engine is None or _tracker is None:
                continue

            now_ms = _now_ms()
            _tracker.tick(now_ms)
            _current_clusters = _engine.get_clusters_snapshot(now_ms)
            _last_tick_ms = now_ms

        except asyncio.CancelledError:
            logger.info("Tick loop cancelled")
            break
        except Exception as e:
            _tick_error_count += 1
            logger.error(f"Tick error: {e}")

    logger.info("Tick loop stopped")


async def run_mock_scanner() -> None:
    """Feed simulated scan batches into the ingestor."""
    global _mock_error_count

    interval = settings.ingest.mock_interval_ms / 1000.0
    logger.info(f"Mock scanner started: interval={settings.ingest.mock_interval_ms}ms")

    while not _shutdown_flag:
        try:
            await asyncio.sleep(interval)
            if _mock_source is None or _ingestor is None:
                continue

            now_ms = _now_ms()
            for advertisement in _mock_source.advertisements(now_ms):
                _ingestor.on_ble(advertisement)
            _ingestor.on_wifi_batch(_mock_source.wifi_results(now_ms))

        except asyncio.CancelledError:
            logger.info("Mock scanner cancelled")
            break
        except Exception as e:
            _mock_error_count += 1
            logger.error(f"Mock scan error: {e}")

    logger.info("Mock scanner stopped")


# =============================================================================
# Lifespan Management
# =============================================================================

async def _cancel(task: Optional[asyncio.Task]) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _engine, _tracker, _ingestor, _mock_source
    global _tick_task, _mock_task, _startup_time, _shutdown_flag
    global _current_clusters, _last_tick_ms

    # Startup
    _shutdown_flag = False
    _startup_time = time.time()
    _current_clusters = []
    _last_tick_ms = 0
    logger.info(f"Starting {settings.agent.name} {settings.agent.version}")

    _engine = SignalEngine(
        window_ms=settings.engine.window_ms,
        decay_half_life_ms=settings.engine.decay_half_life_ms,
        min_samples_for_presence=settings.engine.min_samples_for_presence,
        cluster_rssi_threshold_db=settings.engine.cluster_rssi_threshold_db,
        presence_smoothing=settings.engine.presence_smoothing,
        log_every_n_ticks=settings.service.log_every_n_ticks,
    )
    _tracker = DeviceTracker(
        projector=create_projector(settings.tracker.projection),
        log_every_n_ticks=settings.service.log_every_n_ticks,
    )
    _ingestor = SignalIngestor(
        engine=_engine,
        tracker=_tracker,
        ids=EphemeralIdGenerator(rotation_minutes=settings.identity.rotation_minutes),
        enable_wifi=settings.ingest.enable_wifi,
    )

    _tick_task = asyncio.create_task(run_tick_loop(), name="tick_loop")

    if settings.ingest.backend == "mock":
        _mock_source = MockScanSource(
            device_count=settings.ingest.mock_device_count,
            access_point_count=settings.ingest.mock_access_point_count,
        )
        _mock_task = asyncio.create_task(run_mock_scanner(), name="mock_scanner")
    else:
        logger.info("No scan backend configured, waiting for external ingest")

    logger.info("All components started")

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    await _cancel(_mock_task)
    await _cancel(_tick_task)
    _mock_task = None
    _tick_task = None

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="PulseSense",
    description="Privacy-preserving nearby-device presence estimation",
    version=settings.agent.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "PulseSense",
        "version": settings.agent.version,
        "name": settings.agent.name,
        "status": "running",
        "ingest_backend": settings.ingest.backend,
        "projection": settings.tracker.projection,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe - always 200 while the process is running."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    if _engine is None or _tracker is None or _ingestor is None:
        return _not_ready()

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "last_tick_ms": _last_tick_ms,
        "tick_errors": _tick_error_count,
        "mock_scan_errors": _mock_error_count,
        "cluster_count": len(_current_clusters),
        "engine": _engine.get_metrics(),
        "tracker": _tracker.get_metrics(),
        "ingest": _ingestor.get_metrics(),
    })


@app.post("/ingest/ble", status_code=202)
async def ingest_ble(message: BleAdvertisementMessage) -> JSONResponse:
    """Ingest one BLE advertisement into both estimators."""
    if _ingestor is None:
        return _not_ready()

    _ingestor.on_ble(message.to_advertisement())
    return JSONResponse({"accepted": 1}, status_code=202)


@app.post("/ingest/wifi", status_code=202)
async def ingest_wifi(message: WifiScanMessage) -> JSONResponse:
    """Ingest one Wi-Fi scan batch into the fusion engine."""
    if _ingestor is None:
        return _not_ready()

    accepted = _ingestor.on_wifi_batch(message.to_results())
    return JSONResponse({"accepted": accepted}, status_code=202)


@app.post("/yaw")
async def yaw(message: YawMessage) -> JSONResponse:
    """Record a compass heading sample."""
    if _tracker is None:
        return _not_ready()

    _tracker.on_yaw(message.to_sample())
    return JSONResponse({"yaw_rad": message.yaw_rad})


@app.put("/viewport")
async def viewport(message: ViewportMessage) -> JSONResponse:
    """Set the renderer viewport; dots are recomputed immediately."""
    if _tracker is None:
        return _not_ready()

    _tracker.set_viewport(message.width, message.height)
    return JSONResponse({
        "width": message.width,
        "height": message.height,
        "dot_count": len(_tracker.get_dots_snapshot()),
    })


@app.get("/clusters")
async def clusters() -> JSONResponse:
    """Cluster snapshot computed by the latest tick."""
    return JSONResponse({
        "timestamp_ms": _last_tick_ms,
        "clusters": [cluster.to_dict() for cluster in get_current_clusters()],
    })


@app.get("/clusters/summary")
async def clusters_summary() -> JSONResponse:
    """Summary of the cluster snapshot computed by the latest tick."""
    return JSONResponse(compute_cluster_summary(get_current_clusters()).to_dict())


@app.get("/dots")
async def dots() -> JSONResponse:
    """Trackable devices in viewport coordinates."""
    if _tracker is None:
        return _not_ready()

    return JSONResponse({"dots": [dot.to_dict() for dot in _tracker.get_dots_snapshot()]})


@app.get("/summary")
async def summary() -> JSONResponse:
    """Tracker summary."""
    if _tracker is None:
        return _not_ready()

    return JSONResponse(_tracker.get_summary_snapshot().to_dict())


@app.get("/debug")
async def debug() -> JSONResponse:
    """Tracker debug snapshot relative to the current wall clock."""
    if _tracker is None:
        return _not_ready()

    return JSONResponse(_tracker.get_debug_snapshot(_now_ms()).to_dict())


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/dots")
async def dots_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time dots."""
    await websocket.accept()
    logger.info("Client connected to /ws/dots")

    try:
        while not _shutdown_flag and _tracker is not None:
            await websocket.send_json(
                {"dots": [dot.to_dict() for dot in _tracker.dots.value]}
            )
            await asyncio.sleep(settings.service.tick_interval_ms / 1000.0)

    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/dots")


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Console entry point."""
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "pulse_sense.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
