"""
redis-service-config — configuration defaults.

File: src/redis_service_config/constants.py
Last updated: 2026-10-18

Purpose
- Hold every built-in default and allowed-value set in one explicit, immutable struct.

What should be included in this file
- ``ConfigDefaults`` frozen dataclass and the module-level ``DEFAULTS`` instance.
- Schema version constants used by migration.

Functional requirements
- Components receive a ``ConfigDefaults`` instance explicitly; nothing reads hidden globals.

Non-functional requirements
- Values are stable across releases unless the schema version changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

CURRENT_SCHEMA_VERSION: Final[str] = "1.2.0"
KNOWN_SCHEMA_VERSIONS: Final[tuple[str, ...]] = ("1.0.0", "1.1.0", "1.2.0")

BACKEND_TYPE_WSL2: Final[str] = "WSL2"
BACKEND_TYPE_DOCKER: Final[str] = "Docker"

DEFAULT_CONFIG_FILENAME: Final[str] = "backend.json"
CREDENTIAL_SERVICE_NAME: Final[str] = "redis-service"


@dataclass(frozen=True, slots=True)
class ConfigDefaults:
    """Built-in defaults and allowed values for a Redis service configuration."""

    schema_version: str = CURRENT_SCHEMA_VERSION

    # Redis
    redis_port: int = 6379
    bind_address: str = "127.0.0.1"
    max_memory: str = "512mb"
    max_memory_policy: str = "allkeys-lru"
    enable_persistence: bool = True
    persistence_mode: str = "rdb"
    enable_aof: bool = False
    require_password: bool = False
    redis_log_level: str = "notice"

    # WSL2
    wsl_distribution: str = "Ubuntu"
    wsl_redis_path: str = "/usr/bin/redis-server"
    wsl_redis_cli_path: str = "/usr/bin/redis-cli"
    wsl_config_path: str = "/etc/redis/redis.conf"
    wsl_data_path: str = "/var/lib/redis"
    wsl_log_path: str = "/var/log/redis/redis-server.log"
    wsl_pid_file: str = "/var/run/redis/redis-server.pid"
    windows_data_path: str = "C:\\ProgramData\\Redis\\data"
    windows_config_path: str = "C:\\Program Files\\Redis\\conf\\redis.conf"

    # Docker
    docker_image: str = "redis:7.2-alpine"
    docker_container_name: str = "redis-windows"
    docker_port_mapping: str = "6379:6379"
    docker_volume_mappings: tuple[str, ...] = (
        "C:\\ProgramData\\Redis\\data:/data",
        "C:\\Program Files\\Redis\\conf\\redis.conf:/usr/local/etc/redis/redis.conf",
    )
    docker_network_mode: str = "default"
    docker_restart_policy: str = "unless-stopped"
    docker_memory_limit: str = "512m"
    docker_cpus: str = "1.0"

    # Service lifecycle
    service_name: str = "Redis"
    service_display_name: str = "Redis Server"
    service_description: str = "Redis in-memory data structure store running on WSL2 or Docker"
    start_type: str = "Automatic"
    delayed_auto_start: bool = True
    failure_reset_period_seconds: int = 86400
    failure_restart_delay_ms: int = 60000
    failure_action_count: int = 3

    # Monitoring
    health_check_interval_seconds: int = 30
    health_check_timeout_seconds: int = 5
    event_log_source: str = "Redis Service"
    log_file_path: str = "C:\\ProgramData\\Redis\\logs\\service.log"
    monitoring_log_level: str = "Info"
    max_log_size_mb: int = 50
    max_log_files: int = 10

    # Performance
    max_restart_attempts: int = 3
    restart_cooldown_seconds: int = 60
    memory_warning_threshold: int = 80
    memory_error_threshold: int = 95
    slow_log_threshold_ms: int = 10000

    # Metadata
    config_version: str = "1.0.0"
    created_by: str = "Redis Windows Installer"
    notes: str = "This configuration is automatically generated during installation."

    # Allowed values
    eviction_policies: frozenset[str] = frozenset(
        {
            "noeviction",
            "allkeys-lru",
            "volatile-lru",
            "allkeys-random",
            "volatile-random",
            "volatile-ttl",
            "allkeys-lfu",
            "volatile-lfu",
        }
    )
    persistence_modes: frozenset[str] = frozenset({"rdb", "aof", "both"})
    redis_log_levels: frozenset[str] = frozenset({"debug", "verbose", "notice", "warning"})
    monitoring_log_levels: frozenset[str] = frozenset({"Debug", "Info", "Warning", "Error"})
    special_bind_addresses: frozenset[str] = frozenset({"127.0.0.1", "0.0.0.0", "localhost"})
    start_types: frozenset[str] = frozenset({"Automatic", "Manual", "Disabled"})
    failure_action_types: frozenset[str] = frozenset({"restart", "run_command", "reboot"})
    restart_policies: frozenset[str] = frozenset({"no", "on-failure", "always", "unless-stopped"})
    volume_modes: frozenset[str] = frozenset({"ro", "rw", "z", "Z"})
    weak_passwords: frozenset[str] = frozenset({"password", "123456", "redis", "admin", "test"})
    reserved_environment_names: frozenset[str] = frozenset(
        {"PATH", "TEMP", "TMP", "WINDIR", "SYSTEMROOT", "PROGRAMFILES", "PROGRAMFILES(X86)"}
    )
    script_extensions: frozenset[str] = frozenset({".bat", ".cmd", ".ps1", ".exe"})


DEFAULTS: Final[ConfigDefaults] = ConfigDefaults()

__all__ = [
    "BACKEND_TYPE_DOCKER",
    "BACKEND_TYPE_WSL2",
    "CREDENTIAL_SERVICE_NAME",
    "CURRENT_SCHEMA_VERSION",
    "ConfigDefaults",
    "DEFAULTS",
    "DEFAULT_CONFIG_FILENAME",
    "KNOWN_SCHEMA_VERSIONS",
]
