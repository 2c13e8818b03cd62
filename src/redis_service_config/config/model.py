"""
redis-service-config — configuration model.

File: src/redis_service_config/config/model.py
Last updated: 2026-10-18

Purpose
- Immutable value tree describing a complete Redis service configuration.

What should be included in this file
- One frozen dataclass per settings group.
- The backend tagged union: exactly one of ``WslBackend`` or ``DockerBackend``.
- Secret bindings remembering the indirection token behind each resolved field.

Functional requirements
- Instances never change after construction; updates go through ``dataclasses.replace``.
- Equality ignores secret bindings so a reloaded document compares equal to its source.

Non-functional requirements
- No I/O and no defaults hidden here; defaults come from ``ConfigDefaults`` via the factory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from redis_service_config.constants import BACKEND_TYPE_DOCKER, BACKEND_TYPE_WSL2

PathKey = str | int


class BackendKind(StrEnum):
    """Execution environment that runs the Redis process."""

    WSL2 = BACKEND_TYPE_WSL2
    DOCKER = BACKEND_TYPE_DOCKER


@dataclass(frozen=True, slots=True)
class WslBackend:
    distribution: str
    redis_path: str
    redis_cli_path: str
    config_path: str
    data_path: str
    log_path: str
    pid_file: str
    windows_data_path: str
    windows_config_path: str
    auto_start_on_boot: bool
    health_check_interval: int

    @property
    def kind(self) -> BackendKind:
        return BackendKind.WSL2


@dataclass(frozen=True, slots=True)
class ResourceLimits:
    memory: str
    cpus: str


@dataclass(frozen=True, slots=True)
class DockerBackend:
    image_name: str
    container_name: str
    port_mapping: str
    volume_mappings: tuple[str, ...]
    network_mode: str
    restart_policy: str
    auto_start_on_boot: bool
    health_check_interval: int
    resource_limits: ResourceLimits

    @property
    def kind(self) -> BackendKind:
        return BackendKind.DOCKER


Backend = WslBackend | DockerBackend


@dataclass(frozen=True, slots=True)
class RedisSettings:
    """Data-store settings. ``password`` holds the resolved value and is kept out of repr."""

    port: int
    bind_address: str
    max_memory: str
    max_memory_policy: str
    enable_persistence: bool
    persistence_mode: str
    enable_aof: bool
    require_password: bool
    password: str = field(repr=False)
    log_level: str


@dataclass(frozen=True, slots=True)
class FailureAction:
    type: str
    delay: int


@dataclass(frozen=True, slots=True)
class FailureActions:
    reset_period: int
    restart_delay: int
    actions: tuple[FailureAction, ...]


@dataclass(frozen=True, slots=True)
class ServiceSettings:
    service_name: str
    display_name: str
    description: str
    start_type: str
    delayed_auto_start: bool
    failure_actions: FailureActions


@dataclass(frozen=True, slots=True)
class MonitoringSettings:
    enable_health_check: bool
    health_check_interval: int
    health_check_timeout: int
    enable_windows_event_log: bool
    event_log_source: str
    enable_file_logging: bool
    log_file_path: str
    log_level: str
    max_log_size_mb: int
    max_log_files: int


@dataclass(frozen=True, slots=True)
class PerformanceSettings:
    enable_auto_restart: bool
    max_restart_attempts: int
    restart_cooldown: int
    memory_warning_threshold: int
    memory_error_threshold: int
    enable_slow_log_monitoring: bool
    slow_log_threshold: int


@dataclass(frozen=True, slots=True)
class AdvancedSettings:
    custom_startup_args: tuple[str, ...] = ()
    environment_variables: tuple[tuple[str, str], ...] = ()
    pre_start_script: str = ""
    post_start_script: str = ""
    pre_stop_script: str = ""
    post_stop_script: str = ""

    def environment(self) -> dict[str, str]:
        return dict(self.environment_variables)

    def scripts(self) -> tuple[tuple[str, str], ...]:
        """Return ``(document_key, path)`` pairs in declaration order."""

        return (
            ("preStartScript", self.pre_start_script),
            ("postStartScript", self.post_start_script),
            ("preStopScript", self.pre_stop_script),
            ("postStopScript", self.post_stop_script),
        )


@dataclass(frozen=True, slots=True)
class Metadata:
    config_version: str
    created_by: str
    created_date: datetime | None = None
    last_modified_date: datetime | None = None
    notes: str = ""


@dataclass(frozen=True, slots=True)
class SecretBinding:
    """Document path whose value was produced by resolving ``token``.

    ``value_digest`` is the SHA-256 of the resolved value; it lets persistence tell whether
    the field still holds the resolved secret or was replaced since load.
    """

    path: tuple[PathKey, ...]
    token: str
    value_digest: str

    @property
    def dotted(self) -> str:
        rendered = ""
        for part in self.path:
            if isinstance(part, int):
                rendered = f"{rendered}[{part}]"
            elif rendered:
                rendered = f"{rendered}.{part}"
            else:
                rendered = part
        return rendered


@dataclass(frozen=True, slots=True)
class ServiceConfiguration:
    """Root configuration value."""

    schema_version: str
    backend: Backend
    redis: RedisSettings
    service: ServiceSettings
    monitoring: MonitoringSettings
    performance: PerformanceSettings
    advanced: AdvancedSettings
    metadata: Metadata
    secret_bindings: tuple[SecretBinding, ...] = field(default=(), compare=False, repr=False)

    @property
    def backend_kind(self) -> BackendKind:
        return self.backend.kind

    @property
    def wsl(self) -> WslBackend | None:
        return self.backend if isinstance(self.backend, WslBackend) else None

    @property
    def docker(self) -> DockerBackend | None:
        return self.backend if isinstance(self.backend, DockerBackend) else None

    def binding_for(self, dotted_path: str) -> SecretBinding | None:
        for binding in self.secret_bindings:
            if binding.dotted == dotted_path:
                return binding
        return None


__all__ = [
    "AdvancedSettings",
    "Backend",
    "BackendKind",
    "DockerBackend",
    "FailureAction",
    "FailureActions",
    "Metadata",
    "MonitoringSettings",
    "PathKey",
    "PerformanceSettings",
    "RedisSettings",
    "ResourceLimits",
    "SecretBinding",
    "ServiceConfiguration",
    "ServiceSettings",
    "WslBackend",
]
