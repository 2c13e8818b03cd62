"""
redis-service-config — configuration factory and builder.

File: src/redis_service_config/config/factory.py
Last updated: 2026-10-18

Purpose
- Produce complete configurations from defaults, the process environment, in-memory
  documents, or a fluent builder.

What should be included in this file
- ``create_default`` for each backend kind.
- ``ConfigurationBuilder``: immutable fluent builder with production/development presets.
- ``from_environment`` reading ``REDIS_*`` overrides with deterministic coercion.
- ``from_mapping`` running migrate -> merge over defaults -> resolve secrets -> decode.

Functional requirements
- Every default value comes from ``ConfigDefaults``; nothing is hard-coded here.
- Environment values that cannot be coerced raise ``ConfigLoadError`` naming the variable.

Non-functional requirements
- Builder methods never mutate the receiver.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Final

from redis_service_config.config.document import (
    BACKEND_SECTIONS,
    backend_kind_of,
    decode_configuration,
    encode_configuration,
    merge_documents,
)
from redis_service_config.config.model import (
    AdvancedSettings,
    BackendKind,
    DockerBackend,
    FailureAction,
    FailureActions,
    Metadata,
    MonitoringSettings,
    PerformanceSettings,
    RedisSettings,
    ResourceLimits,
    ServiceConfiguration,
    ServiceSettings,
    WslBackend,
)
from redis_service_config.config.secrets import SecretResolver
from redis_service_config.config.versioning import migrate
from redis_service_config.constants import DEFAULTS, ConfigDefaults
from redis_service_config.errors import ConfigLoadError

ENV_PREFIX: Final[str] = "REDIS_"
ENV_BACKEND_TYPE: Final[str] = f"{ENV_PREFIX}BACKEND_TYPE"
ENV_PORT: Final[str] = f"{ENV_PREFIX}PORT"
ENV_PASSWORD: Final[str] = f"{ENV_PREFIX}PASSWORD"
ENV_REQUIRE_PASSWORD: Final[str] = f"{ENV_PREFIX}REQUIRE_PASSWORD"

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


def default_wsl_backend(defaults: ConfigDefaults = DEFAULTS) -> WslBackend:
    return WslBackend(
        distribution=defaults.wsl_distribution,
        redis_path=defaults.wsl_redis_path,
        redis_cli_path=defaults.wsl_redis_cli_path,
        config_path=defaults.wsl_config_path,
        data_path=defaults.wsl_data_path,
        log_path=defaults.wsl_log_path,
        pid_file=defaults.wsl_pid_file,
        windows_data_path=defaults.windows_data_path,
        windows_config_path=defaults.windows_config_path,
        auto_start_on_boot=True,
        health_check_interval=defaults.health_check_interval_seconds,
    )


def default_docker_backend(defaults: ConfigDefaults = DEFAULTS) -> DockerBackend:
    return DockerBackend(
        image_name=defaults.docker_image,
        container_name=defaults.docker_container_name,
        port_mapping=defaults.docker_port_mapping,
        volume_mappings=defaults.docker_volume_mappings,
        network_mode=defaults.docker_network_mode,
        restart_policy=defaults.docker_restart_policy,
        auto_start_on_boot=True,
        health_check_interval=defaults.health_check_interval_seconds,
        resource_limits=ResourceLimits(
            memory=defaults.docker_memory_limit,
            cpus=defaults.docker_cpus,
        ),
    )


def create_default(
    backend_kind: BackendKind | str = BackendKind.WSL2,
    defaults: ConfigDefaults = DEFAULTS,
    *,
    now: datetime | None = None,
) -> ServiceConfiguration:
    """Return the built-in configuration for ``backend_kind``."""

    kind = _coerce_backend_kind(backend_kind, source="backend_kind")
    created = now if now is not None else datetime.now(UTC)
    if kind is BackendKind.WSL2:
        backend: WslBackend | DockerBackend = default_wsl_backend(defaults)
    else:
        backend = default_docker_backend(defaults)
    return ServiceConfiguration(
        schema_version=defaults.schema_version,
        backend=backend,
        redis=RedisSettings(
            port=defaults.redis_port,
            bind_address=defaults.bind_address,
            max_memory=defaults.max_memory,
            max_memory_policy=defaults.max_memory_policy,
            enable_persistence=defaults.enable_persistence,
            persistence_mode=defaults.persistence_mode,
            enable_aof=defaults.enable_aof,
            require_password=defaults.require_password,
            password="",
            log_level=defaults.redis_log_level,
        ),
        service=ServiceSettings(
            service_name=defaults.service_name,
            display_name=defaults.service_display_name,
            description=defaults.service_description,
            start_type=defaults.start_type,
            delayed_auto_start=defaults.delayed_auto_start,
            failure_actions=FailureActions(
                reset_period=defaults.failure_reset_period_seconds,
                restart_delay=defaults.failure_restart_delay_ms,
                actions=tuple(
                    FailureAction(type="restart", delay=defaults.failure_restart_delay_ms)
                    for _ in range(defaults.failure_action_count)
                ),
            ),
        ),
        monitoring=MonitoringSettings(
            enable_health_check=True,
            health_check_interval=defaults.health_check_interval_seconds,
            health_check_timeout=defaults.health_check_timeout_seconds,
            enable_windows_event_log=True,
            event_log_source=defaults.event_log_source,
            enable_file_logging=True,
            log_file_path=defaults.log_file_path,
            log_level=defaults.monitoring_log_level,
            max_log_size_mb=defaults.max_log_size_mb,
            max_log_files=defaults.max_log_files,
        ),
        performance=PerformanceSettings(
            enable_auto_restart=True,
            max_restart_attempts=defaults.max_restart_attempts,
            restart_cooldown=defaults.restart_cooldown_seconds,
            memory_warning_threshold=defaults.memory_warning_threshold,
            memory_error_threshold=defaults.memory_error_threshold,
            enable_slow_log_monitoring=True,
            slow_log_threshold=defaults.slow_log_threshold_ms,
        ),
        advanced=AdvancedSettings(),
        metadata=Metadata(
            config_version=defaults.config_version,
            created_by=defaults.created_by,
            created_date=created,
            last_modified_date=created,
            notes=defaults.notes,
        ),
    )


def default_document(
    backend_kind: BackendKind | str = BackendKind.WSL2,
    defaults: ConfigDefaults = DEFAULTS,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    return encode_configuration(create_default(backend_kind, defaults, now=now))


class ConfigurationBuilder:
    """Immutable fluent builder; every ``with_*`` call returns a new builder."""

    __slots__ = ("_config", "_defaults")

    def __init__(
        self,
        base: ServiceConfiguration | None = None,
        *,
        defaults: ConfigDefaults = DEFAULTS,
    ) -> None:
        self._defaults = defaults
        self._config = base if base is not None else create_default(BackendKind.WSL2, defaults)

    @property
    def current(self) -> ServiceConfiguration:
        return self._config

    def _derive(self, config: ServiceConfiguration) -> ConfigurationBuilder:
        return ConfigurationBuilder(config, defaults=self._defaults)

    def with_wsl(self, **changes: Any) -> ConfigurationBuilder:
        backend = self._config.wsl or default_wsl_backend(self._defaults)
        return self._derive(replace(self._config, backend=replace(backend, **changes)))

    def with_docker(self, **changes: Any) -> ConfigurationBuilder:
        backend = self._config.docker or default_docker_backend(self._defaults)
        if "volume_mappings" in changes:
            changes["volume_mappings"] = tuple(changes["volume_mappings"])
        return self._derive(replace(self._config, backend=replace(backend, **changes)))

    def with_redis(self, **changes: Any) -> ConfigurationBuilder:
        return self._derive(replace(self._config, redis=replace(self._config.redis, **changes)))

    def with_port(self, port: int) -> ConfigurationBuilder:
        return self.with_redis(port=port)

    def with_password(self, password: str, *, require: bool = True) -> ConfigurationBuilder:
        """Set the Redis password; ``password`` may be an ``${ENV:..}``/``${CRED:..}`` token."""

        return self.with_redis(password=password, require_password=require)

    def with_service(self, **changes: Any) -> ConfigurationBuilder:
        service = self._config.service
        return self._derive(replace(self._config, service=replace(service, **changes)))

    def with_monitoring(self, **changes: Any) -> ConfigurationBuilder:
        monitoring = self._config.monitoring
        return self._derive(replace(self._config, monitoring=replace(monitoring, **changes)))

    def with_performance(self, **changes: Any) -> ConfigurationBuilder:
        performance = self._config.performance
        return self._derive(replace(self._config, performance=replace(performance, **changes)))

    def with_advanced(self, **changes: Any) -> ConfigurationBuilder:
        if "custom_startup_args" in changes:
            changes["custom_startup_args"] = tuple(changes["custom_startup_args"])
        if isinstance(changes.get("environment_variables"), Mapping):
            changes["environment_variables"] = tuple(changes["environment_variables"].items())
        advanced = self._config.advanced
        return self._derive(replace(self._config, advanced=replace(advanced, **changes)))

    def with_metadata(self, **changes: Any) -> ConfigurationBuilder:
        metadata = self._config.metadata
        return self._derive(replace(self._config, metadata=replace(metadata, **changes)))

    def for_production(self) -> ConfigurationBuilder:
        """Authentication, persistence and supervision on; quiet logging."""

        return (
            self.with_redis(
                require_password=True,
                enable_persistence=True,
                persistence_mode="both",
                log_level="notice",
            )
            .with_monitoring(enable_health_check=True, log_level="Info")
            .with_performance(enable_auto_restart=True)
        )

    def for_development(self) -> ConfigurationBuilder:
        return self.with_redis(
            require_password=False,
            enable_persistence=False,
            log_level="verbose",
        ).with_monitoring(log_level="Debug")

    def build(self, resolver: SecretResolver | None = None) -> ServiceConfiguration:
        """Return the configuration, resolving secret tokens when ``resolver`` is given."""

        if resolver is None:
            return self._config
        return resolver.resolve_configuration(self._config)


def from_environment(
    environ: Mapping[str, str] | None = None,
    defaults: ConfigDefaults = DEFAULTS,
) -> ServiceConfiguration:
    """Build a configuration from defaults plus ``REDIS_*`` overrides."""

    env = os.environ if environ is None else environ

    kind = BackendKind.WSL2
    raw_kind = env.get(ENV_BACKEND_TYPE)
    if raw_kind is not None and raw_kind.strip():
        kind = _coerce_backend_kind(raw_kind, source=ENV_BACKEND_TYPE)

    builder = ConfigurationBuilder(create_default(kind, defaults), defaults=defaults)

    raw_port = env.get(ENV_PORT)
    if raw_port is not None and raw_port.strip():
        try:
            port = int(raw_port.strip())
        except ValueError as exc:
            raise ConfigLoadError(f"{ENV_PORT} -> redis.port must be an integer") from exc
        builder = builder.with_port(port)

    raw_require = env.get(ENV_REQUIRE_PASSWORD)
    if raw_require is not None and raw_require.strip():
        builder = builder.with_redis(
            require_password=_coerce_bool(raw_require, ENV_REQUIRE_PASSWORD)
        )

    if env.get(ENV_PASSWORD):
        # Bound as a token; save re-emits the token, never the value.
        builder = builder.with_redis(password=f"${{ENV:{ENV_PASSWORD}}}")
        return builder.build(SecretResolver(environ=env))

    return builder.build()


def from_mapping(
    document: Mapping[str, object],
    *,
    resolver: SecretResolver | None = None,
    defaults: ConfigDefaults = DEFAULTS,
) -> ServiceConfiguration:
    """Decode an in-memory document with the same pipeline ``load`` uses."""

    return decode_document(document, resolver=resolver or SecretResolver(), defaults=defaults)


def decode_document(
    document: Mapping[str, object],
    *,
    resolver: SecretResolver,
    defaults: ConfigDefaults = DEFAULTS,
) -> ServiceConfiguration:
    """Migrate, lay over defaults, resolve secrets and decode one raw document."""

    migrated = migrate(document, defaults)
    complete = complete_document(migrated, defaults)
    resolution = resolver.resolve_document(complete)
    return decode_configuration(resolution.document, secret_bindings=resolution.bindings)


def complete_document(
    document: Mapping[str, object], defaults: ConfigDefaults = DEFAULTS
) -> dict[str, Any]:
    """Fill fields missing from ``document`` with defaults for its backend kind.

    Documents with an unknown backend kind are returned unchanged so decoding reports it.
    """

    kind = backend_kind_of(document)
    if kind is None:
        return merge_documents({}, document)
    base = default_document(kind, defaults)
    base["metadata"]["createdDate"] = None
    base["metadata"]["lastModifiedDate"] = None
    for other_kind, section in BACKEND_SECTIONS.items():
        if other_kind is not kind:
            base.pop(section, None)
    merged = merge_documents(base, document)
    merged["backendType"] = str(kind)
    return merged


def _coerce_backend_kind(value: BackendKind | str, *, source: str) -> BackendKind:
    if isinstance(value, BackendKind):
        return value
    kind = backend_kind_of({"backendType": value})
    if kind is None:
        expected = ", ".join(str(item) for item in BackendKind)
        raise ConfigLoadError(f"{source} must be one of: {expected}; got {value!r}")
    return kind


def _coerce_bool(raw: str, env_name: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _BOOLEAN_TRUE:
        return True
    if lowered in _BOOLEAN_FALSE:
        return False
    raise ConfigLoadError(
        f"{env_name} -> redis.requirePassword must be a boolean (true/false/1/0/yes/no/on/off)"
    )


__all__ = [
    "ConfigurationBuilder",
    "ENV_BACKEND_TYPE",
    "ENV_PASSWORD",
    "ENV_PORT",
    "ENV_REQUIRE_PASSWORD",
    "complete_document",
    "create_default",
    "decode_document",
    "default_docker_backend",
    "default_document",
    "default_wsl_backend",
    "from_environment",
    "from_mapping",
]
