"""
PulseSense Configuration
========================

This module handles configuration loading for the presence service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PULSE_WINDOW_MS          -> engine.window_ms
    PULSE_DECAY_HALF_LIFE_MS -> engine.decay_half_life_ms
    PULSE_PROJECTION         -> tracker.projection
    PULSE_ROTATION_MINUTES   -> identity.rotation_minutes
    PULSE_INGEST_BACKEND     -> ingest.backend
    PULSE_ENABLE_WIFI        -> ingest.enable_wifi
    PULSE_TICK_INTERVAL_MS   -> service.tick_interval_ms
    PULSE_PORT               -> server.port
    PULSE_LOG_LEVEL          -> logging.level
    PORT                     -> server.port (container platforms)

Example:
    from pulse_sense.config import settings

    print(settings.engine.window_ms)
    print(settings.tracker.projection)
"""

import os
import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AgentConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="pulse-sense", description="Service name")
    version: str = Field(default="v0.1.0", description="Protocol version")


class EngineConfig(BaseModel):
    """Signal fusion engine configuration."""

    window_ms: int = Field(
        default=20_000,
        gt=0,
        description="Sliding window length per source (ms)",
    )
    decay_half_life_ms: int = Field(
        default=18_000,
        gt=0,
        description="Time constant of presence decay while a source is silent (ms)",
    )
    min_samples_for_presence: int = Field(
        default=3,
        ge=0,
        description="Samples needed before persistence starts to accrue",
    )
    cluster_rssi_threshold_db: float = Field(
        default=8.0,
        ge=0,
        description="Maximum RSSI distance (dB) for merging a source into a cluster",
    )
    presence_smoothing: float = Field(
        default=0.15,
        gt=0,
        le=1.0,
        description="Smoothing factor toward the presence target (0, 1]",
    )


class TrackerConfig(BaseModel):
    """Device tracker configuration."""

    projection: Literal["compass_cone", "hash_radial"] = Field(
        default="compass_cone",
        description="Dot placement policy, fixed for the process lifetime",
    )


class IdentityConfig(BaseModel):
    """Ephemeral id configuration."""

    rotation_minutes: int = Field(
        default=5,
        ge=1,
        description="Ephemeral id rotation period in minutes",
    )


class IngestConfig(BaseModel):
    """Scan source configuration."""

    backend: Literal["mock", "none"] = Field(
        default="none",
        description="Scan source: 'mock' for simulated radios, 'none' for external ingest only",
    )
    enable_wifi: bool = Field(default=True, description="Feed Wi-Fi results to the engine")
    mock_device_count: int = Field(default=4, ge=0, description="Simulated BLE devices")
    mock_access_point_count: int = Field(default=2, ge=0, description="Simulated access points")
    mock_interval_ms: int = Field(
        default=250,
        ge=50,
        description="Interval between simulated scan batches (ms)",
    )


class ServiceConfig(BaseModel):
    """Runtime loop configuration."""

    tick_interval_ms: int = Field(
        default=500,
        ge=50,
        le=10_000,
        description="Interval between estimator ticks (ms)",
    )
    log_every_n_ticks: int = Field(
        default=50,
        ge=0,
        description="Log an estimator summary every N ticks (0 = never)",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for PulseSense.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    agent: AgentConfig = Field(default_factory=AgentConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

CONFIG_SEARCH_PATHS = (
    Path("config.yaml"),
    Path("config.yml"),
    Path(__file__).parent.parent.parent / "config.yaml",
)

JSON_LOG_FORMAT = (
    '{"time": "%(asctime)s", "level": "%(levelname)s", '
    '"logger": "%(name)s", "message": "%(message)s"}'
)
TEXT_LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Build Settings from defaults, an optional YAML file and PULSE_* variables.

    Environment variables win over the file; the file wins over defaults.

    Args:
        config_path: Explicit YAML path. If None, CONFIG_SEARCH_PATHS are
            tried in order.

    Returns:
        Settings: Validated configuration

    Raises:
        pydantic.ValidationError: If the merged configuration is invalid
    """
    path = Path(config_path) if config_path else _find_config_file()
    config_data = _read_yaml(path) if path is not None and path.exists() else {}
    if not config_data:
        logger.warning("No PulseSense config file loaded, using defaults and PULSE_* variables")

    _apply_env_overrides(config_data)
    return Settings.model_validate(config_data)


def _find_config_file() -> Optional[Path]:
    return next((path for path in CONFIG_SEARCH_PATHS if path.exists()), None)


def _read_yaml(path: Path) -> dict:
    logger.info(f"Loading PulseSense config from: {path}")
    with path.open("r") as f:
        return yaml.safe_load(f) or {}


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Engine settings
    if env_window := os.environ.get("PULSE_WINDOW_MS"):
        config_data.setdefault("engine", {})["window_ms"] = int(env_window)
    if env_half_life := os.environ.get("PULSE_DECAY_HALF_LIFE_MS"):
        config_data.setdefault("engine", {})["decay_half_life_ms"] = int(env_half_life)

    # Tracker settings
    if env_projection := os.environ.get("PULSE_PROJECTION"):
        config_data.setdefault("tracker", {})["projection"] = env_projection

    # Identity settings
    if env_rotation := os.environ.get("PULSE_ROTATION_MINUTES"):
        config_data.setdefault("identity", {})["rotation_minutes"] = int(env_rotation)

    # Ingest settings
    if env_backend := os.environ.get("PULSE_INGEST_BACKEND"):
        config_data.setdefault("ingest", {})["backend"] = env_backend
    if env_wifi := os.environ.get("PULSE_ENABLE_WIFI"):
        config_data.setdefault("ingest", {})["enable_wifi"] = env_wifi.lower() in ("1", "true", "yes")

    # Service settings
    if env_tick := os.environ.get("PULSE_TICK_INTERVAL_MS"):
        config_data.setdefault("service", {})["tick_interval_ms"] = int(env_tick)

    # Server settings (container platforms use PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("PULSE_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("PULSE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Install the root handler at the configured level and format."""
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    log_format = JSON_LOG_FORMAT if settings.logging.format == "json" else TEXT_LOG_FORMAT
    logging.basicConfig(level=level, format=log_format, datefmt="%Y-%m-%dT%H:%M:%S")


# =============================================================================
# Global Settings Instance
# =============================================================================

# Read once on import; the service and the tests share this instance
settings = load_config()
setup_logging(settings)
