"""
Configuration Module

Provides centralized configuration management for the code runner.
Supports YAML config files with a local override file.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries. Override values take precedence.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML configuration {path.name}: {e}")
    except OSError as e:
        raise RuntimeError(f"Error loading configuration file {path.name}: {e}")


def load_yaml_config(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML files with local override support.

    Loading order:
    1. config.yaml (or config.example.yaml as fallback) as base configuration
    2. config.local.yaml, if present, deep-merged on top of the base

    The directory can be redirected with the ``CODERUNNER_CONFIG_DIR``
    environment variable.

    Returns:
        Dictionary containing all configuration values
    """
    if config_dir is None:
        config_dir = Path(os.environ.get("CODERUNNER_CONFIG_DIR") or Path(__file__).parent)
    config_path = config_dir / "config.yaml"

    if not config_path.exists():
        config_path = config_dir / "config.example.yaml"
        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found. Please create {config_dir / 'config.yaml'} "
                f"based on {config_dir / 'config.example.yaml'}"
            )

    base_config = _read_yaml(config_path)

    local_config_path = config_dir / "config.local.yaml"
    if local_config_path.exists():
        return deep_merge(base_config, _read_yaml(local_config_path))

    return base_config


_config = load_yaml_config()


# ============================================================================
# Server Configuration
# ============================================================================

class ServerConfig:
    """Server configuration management"""

    _server_config = _config.get("server", {})

    HOST = _server_config.get("host", "0.0.0.0")
    PORT = _server_config.get("port", 8080)
    RELOAD = _server_config.get("reload", False)
    DEBUG = _server_config.get("debug", False)
    CORS_ORIGINS = _server_config.get("cors_origins", ["http://localhost:5173", "http://localhost:3000"])


# ============================================================================
# Executor Configuration (isolation profile and scheduling)
# ============================================================================

class ExecutorConfig:
    """Execution limits applied to every run. Not overridable per request."""

    _executor_config = _config.get("executor", {})

    # Wall-clock limit for a single run, measured from the start of the wait
    TIMEOUT_SECONDS = _executor_config.get("timeout_seconds", 30)

    # Container resource limits
    MEMORY_BYTES = _executor_config.get("memory_bytes", 256 * 1024 * 1024)
    CPU_PERIOD = _executor_config.get("cpu_period", 100_000)
    CPU_QUOTA = _executor_config.get("cpu_quota", 50_000)
    PIDS_LIMIT = _executor_config.get("pids_limit", 64)

    # Scheduling
    MAX_CONCURRENT_RUNS = _executor_config.get("max_concurrent_runs", 3)
    WORKER_THREADS = _executor_config.get("worker_threads", 16)
    OUTPUT_DRAIN_SECONDS = _executor_config.get("output_drain_seconds", 5)
    FINISHED_HISTORY_SIZE = _executor_config.get("finished_history_size", 1000)

    # Host directory for per-run workspaces (None = system temp dir)
    WORKSPACE_ROOT = _executor_config.get("workspace_root") or None

    # Per-language image overrides, keyed by canonical language id
    IMAGES: Dict[str, str] = _executor_config.get("images", {}) or {}


# ============================================================================
# Docker Configuration
# ============================================================================

class DockerConfig:
    """Docker engine connection settings"""

    _docker_config = _config.get("docker", {})

    # Empty means docker.from_env() (DOCKER_HOST or the local socket)
    BASE_URL = _docker_config.get("base_url", "")
    CONTAINER_PREFIX = _docker_config.get("container_prefix", "coderunner-")


# ============================================================================
# Logging Configuration
# ============================================================================

class LoggingSettings:
    """Log file location and level"""

    _logging_config = _config.get("logging", {})

    LEVEL = str(_logging_config.get("level", "INFO")).upper()
    DIR = _logging_config.get("dir") or None
    FILE_NAME = _logging_config.get("file_name", "coderunner")
    BACKUP_COUNT = _logging_config.get("backup_count", 30)


# ============================================================================
# Pydantic Settings
# ============================================================================

class Settings(BaseSettings):
    """Application settings with validation"""

    # Application
    app_name: str = "Code Runner"
    debug: bool = ServerConfig.DEBUG

    # Server
    host: str = ServerConfig.HOST
    port: int = ServerConfig.PORT
    cors_origins: List[str] = ServerConfig.CORS_ORIGINS

    # Executor
    executor_timeout_seconds: int = ExecutorConfig.TIMEOUT_SECONDS
    executor_memory_bytes: int = ExecutorConfig.MEMORY_BYTES
    executor_cpu_period: int = ExecutorConfig.CPU_PERIOD
    executor_cpu_quota: int = ExecutorConfig.CPU_QUOTA
    executor_pids_limit: int = ExecutorConfig.PIDS_LIMIT
    executor_max_concurrent_runs: int = ExecutorConfig.MAX_CONCURRENT_RUNS
    executor_worker_threads: int = ExecutorConfig.WORKER_THREADS
    executor_output_drain_seconds: float = ExecutorConfig.OUTPUT_DRAIN_SECONDS
    executor_finished_history_size: int = ExecutorConfig.FINISHED_HISTORY_SIZE
    executor_workspace_root: Optional[str] = ExecutorConfig.WORKSPACE_ROOT
    executor_images: Dict[str, str] = ExecutorConfig.IMAGES

    # Docker
    docker_base_url: str = DockerConfig.BASE_URL
    docker_container_prefix: str = DockerConfig.CONTAINER_PREFIX

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


__all__ = [
    "load_yaml_config",
    "ServerConfig",
    "ExecutorConfig",
    "DockerConfig",
    "LoggingSettings",
    "Settings",
    "get_settings",
]
