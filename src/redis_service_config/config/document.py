"""
redis-service-config — JSON document codec.

File: src/redis_service_config/config/document.py
Last updated: 2026-10-18

Purpose
- Convert between the persisted camelCase document and ``ServiceConfiguration``.

What should be included in this file
- ``encode_configuration`` producing a deterministic plain-JSON mapping.
- ``decode_configuration`` performing structural (type/shape) checks only.
- Deterministic deep-merge helpers used to lay partial documents over defaults.

Functional requirements
- Structural problems are collected (path + message) and raised together as ``ConfigLoadError``.
- Semantic problems (ranges, enums, cross-field rules) are left to the validators.
- Only the active backend section is decoded and encoded.

Non-functional requirements
- Pure functions; no file I/O.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from redis_service_config.config.model import (
    AdvancedSettings,
    Backend,
    BackendKind,
    DockerBackend,
    FailureAction,
    FailureActions,
    Metadata,
    MonitoringSettings,
    PerformanceSettings,
    RedisSettings,
    ResourceLimits,
    SecretBinding,
    ServiceConfiguration,
    ServiceSettings,
    WslBackend,
)
from redis_service_config.errors import ConfigLoadError
from redis_service_config.validation.result import join_path

_T = TypeVar("_T")

BACKEND_SECTIONS: dict[BackendKind, str] = {
    BackendKind.WSL2: "wsl",
    BackendKind.DOCKER: "docker",
}


class _StructureIssues:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[str] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(f"{path}: {message}")

    def items(self) -> tuple[str, ...]:
        return tuple(self._items)


def encode_configuration(config: ServiceConfiguration) -> dict[str, Any]:
    """Render ``config`` as a JSON-ready document. Resolved secret values are included."""

    backend_section = BACKEND_SECTIONS[config.backend_kind]
    return {
        "schemaVersion": config.schema_version,
        "backendType": str(config.backend_kind),
        backend_section: _encode_backend(config.backend),
        "redis": {
            "port": config.redis.port,
            "bindAddress": config.redis.bind_address,
            "maxMemory": config.redis.max_memory,
            "maxMemoryPolicy": config.redis.max_memory_policy,
            "enablePersistence": config.redis.enable_persistence,
            "persistenceMode": config.redis.persistence_mode,
            "enableAOF": config.redis.enable_aof,
            "requirePassword": config.redis.require_password,
            "password": config.redis.password,
            "logLevel": config.redis.log_level,
        },
        "service": {
            "serviceName": config.service.service_name,
            "displayName": config.service.display_name,
            "description": config.service.description,
            "startType": config.service.start_type,
            "delayedAutoStart": config.service.delayed_auto_start,
            "failureActions": {
                "resetPeriod": config.service.failure_actions.reset_period,
                "restartDelay": config.service.failure_actions.restart_delay,
                "actions": [
                    {"type": action.type, "delay": action.delay}
                    for action in config.service.failure_actions.actions
                ],
            },
        },
        "monitoring": {
            "enableHealthCheck": config.monitoring.enable_health_check,
            "healthCheckInterval": config.monitoring.health_check_interval,
            "healthCheckTimeout": config.monitoring.health_check_timeout,
            "enableWindowsEventLog": config.monitoring.enable_windows_event_log,
            "eventLogSource": config.monitoring.event_log_source,
            "enableFileLogging": config.monitoring.enable_file_logging,
            "logFilePath": config.monitoring.log_file_path,
            "logLevel": config.monitoring.log_level,
            "maxLogSizeMB": config.monitoring.max_log_size_mb,
            "maxLogFiles": config.monitoring.max_log_files,
        },
        "performance": {
            "enableAutoRestart": config.performance.enable_auto_restart,
            "maxRestartAttempts": config.performance.max_restart_attempts,
            "restartCooldown": config.performance.restart_cooldown,
            "memoryWarningThreshold": config.performance.memory_warning_threshold,
            "memoryErrorThreshold": config.performance.memory_error_threshold,
            "enableSlowLogMonitoring": config.performance.enable_slow_log_monitoring,
            "slowLogThreshold": config.performance.slow_log_threshold,
        },
        "advanced": {
            "customStartupArgs": list(config.advanced.custom_startup_args),
            "environmentVariables": dict(config.advanced.environment_variables),
            "preStartScript": config.advanced.pre_start_script,
            "postStartScript": config.advanced.post_start_script,
            "preStopScript": config.advanced.pre_stop_script,
            "postStopScript": config.advanced.post_stop_script,
        },
        "metadata": {
            "configVersion": config.metadata.config_version,
            "createdBy": config.metadata.created_by,
            "createdDate": _encode_datetime(config.metadata.created_date),
            "lastModifiedDate": _encode_datetime(config.metadata.last_modified_date),
            "notes": config.metadata.notes,
        },
    }


def decode_configuration(
    document: Mapping[str, object],
    *,
    secret_bindings: tuple[SecretBinding, ...] = (),
) -> ServiceConfiguration:
    """Decode a complete document; raise ``ConfigLoadError`` listing every structural issue."""

    issues = _StructureIssues()
    root = _as_object(document, "<root>", issues)
    if root is None:
        raise ConfigLoadError("invalid configuration document", issues=issues.items())

    schema_version = _as_str(root.get("schemaVersion"), "schemaVersion", issues)
    kind = _as_backend_kind(root.get("backendType"), "backendType", issues)

    backend: Backend | None = None
    if kind is not None:
        section = BACKEND_SECTIONS[kind]
        backend_obj = _as_object(root.get(section), section, issues)
        if backend_obj is not None:
            if kind is BackendKind.WSL2:
                backend = _decode_wsl(backend_obj, section, issues)
            else:
                backend = _decode_docker(backend_obj, section, issues)

    redis = _section(root, "redis", issues, _decode_redis)
    service = _section(root, "service", issues, _decode_service)
    monitoring = _section(root, "monitoring", issues, _decode_monitoring)
    performance = _section(root, "performance", issues, _decode_performance)
    advanced = _section(root, "advanced", issues, _decode_advanced)
    metadata = _section(root, "metadata", issues, _decode_metadata)

    found = issues.items()
    if (
        found
        or schema_version is None
        or backend is None
        or redis is None
        or service is None
        or monitoring is None
        or performance is None
        or advanced is None
        or metadata is None
    ):
        raise ConfigLoadError("invalid configuration document", issues=found)

    return ServiceConfiguration(
        schema_version=schema_version,
        backend=backend,
        redis=redis,
        service=service,
        monitoring=monitoring,
        performance=performance,
        advanced=advanced,
        metadata=metadata,
        secret_bindings=secret_bindings,
    )


def backend_kind_of(document: Mapping[str, object]) -> BackendKind | None:
    """Return the document's backend kind when it names a known variant."""

    raw = document.get("backendType")
    if not isinstance(raw, str):
        return None
    for kind in BackendKind:
        if raw.strip().lower() == kind.value.lower():
            return kind
    return None


def merge_documents(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``; lists are replaced, not merged."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def _encode_backend(backend: Backend) -> dict[str, Any]:
    if isinstance(backend, WslBackend):
        return {
            "distribution": backend.distribution,
            "redisPath": backend.redis_path,
            "redisCliPath": backend.redis_cli_path,
            "configPath": backend.config_path,
            "dataPath": backend.data_path,
            "logPath": backend.log_path,
            "pidFile": backend.pid_file,
            "windowsDataPath": backend.windows_data_path,
            "windowsConfigPath": backend.windows_config_path,
            "autoStartOnBoot": backend.auto_start_on_boot,
            "healthCheckInterval": backend.health_check_interval,
        }
    return {
        "imageName": backend.image_name,
        "containerName": backend.container_name,
        "portMapping": backend.port_mapping,
        "volumeMappings": list(backend.volume_mappings),
        "networkMode": backend.network_mode,
        "restartPolicy": backend.restart_policy,
        "autoStartOnBoot": backend.auto_start_on_boot,
        "healthCheckInterval": backend.health_check_interval,
        "resourceLimits": {
            "memory": backend.resource_limits.memory,
            "cpus": backend.resource_limits.cpus,
        },
    }


def _encode_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _section(
    root: Mapping[str, object],
    key: str,
    issues: _StructureIssues,
    decoder: Callable[[dict[str, object], str, _StructureIssues], _T | None],
) -> _T | None:
    section_obj = _as_object(root.get(key), key, issues)
    if section_obj is None:
        return None
    return decoder(section_obj, key, issues)


def _decode_wsl(
    payload: Mapping[str, object], path: str, issues: _StructureIssues
) -> WslBackend | None:
    fields = {
        "distribution": _str_field(payload, path, "distribution", issues),
        "redis_path": _str_field(payload, path, "redisPath", issues),
        "redis_cli_path": _str_field(payload, path, "redisCliPath", issues),
        "config_path": _str_field(payload, path, "configPath", issues),
        "data_path": _str_field(payload, path, "dataPath", issues),
        "log_path": _str_field(payload, path, "logPath", issues),
        "pid_file": _str_field(payload, path, "pidFile", issues),
        "windows_data_path": _str_field(payload, path, "windowsDataPath", issues),
        "windows_config_path": _str_field(payload, path, "windowsConfigPath", issues),
        "auto_start_on_boot": _bool_field(payload, path, "autoStartOnBoot", issues),
        "health_check_interval": _int_field(payload, path, "healthCheckInterval", issues),
    }
    if any(value is None for value in fields.values()):
        return None
    return WslBackend(**fields)  # type: ignore[arg-type]


def _decode_docker(
    payload: Mapping[str, object], path: str, issues: _StructureIssues
) -> DockerBackend | None:
    limits_path = join_path(path, "resourceLimits")
    limits_obj = _as_object(payload.get("resourceLimits"), limits_path, issues)
    limits: ResourceLimits | None = None
    if limits_obj is not None:
        memory = _str_field(limits_obj, limits_path, "memory", issues)
        cpus = _as_cpus(limits_obj.get("cpus"), join_path(limits_path, "cpus"), issues)
        if memory is not None and cpus is not None:
            limits = ResourceLimits(memory=memory, cpus=cpus)

    fields = {
        "image_name": _str_field(payload, path, "imageName", issues),
        "container_name": _str_field(payload, path, "containerName", issues),
        "port_mapping": _str_field(payload, path, "portMapping", issues),
        "volume_mappings": _str_list_field(payload, path, "volumeMappings", issues),
        "network_mode": _str_field(payload, path, "networkMode", issues),
        "restart_policy": _str_field(payload, path, "restartPolicy", issues),
        "auto_start_on_boot": _bool_field(payload, path, "autoStartOnBoot", issues),
        "health_check_interval": _int_field(payload, path, "healthCheckInterval", issues),
        "resource_limits": limits,
    }
    if any(value is None for value in fields.values()):
        return None
    return DockerBackend(**fields)  # type: ignore[arg-type]


def _decode_redis(
    payload: Mapping[str, object], path: str, issues: _StructureIssues
) -> RedisSettings | None:
    fields = {
        "port": _int_field(payload, path, "port", issues),
        "bind_address": _str_field(payload, path, "bindAddress", issues),
        "max_memory": _str_field(payload, path, "maxMemory", issues),
        "max_memory_policy": _str_field(payload, path, "maxMemoryPolicy", issues),
        "enable_persistence": _bool_field(payload, path, "enablePersistence", issues),
        "persistence_mode": _str_field(payload, path, "persistenceMode", issues),
        "enable_aof": _bool_field(payload, path, "enableAOF", issues),
        "require_password": _bool_field(payload, path, "requirePassword", issues),
        "password": _str_field(payload, path, "password", issues),
        "log_level": _str_field(payload, path, "logLevel", issues),
    }
    if any(value is None for value in fields.values()):
        return None
    return RedisSettings(**fields)  # type: ignore[arg-type]


def _decode_service(
    payload: Mapping[str, object], path: str, issues: _StructureIssues
) -> ServiceSettings | None:
    failure_path = join_path(path, "failureActions")
    failure_obj = _as_object(payload.get("failureActions"), failure_path, issues)
    failure_actions: FailureActions | None = None
    if failure_obj is not None:
        reset_period = _int_field(failure_obj, failure_path, "resetPeriod", issues)
        restart_delay = _int_field(failure_obj, failure_path, "restartDelay", issues)
        actions = _decode_actions(
            failure_obj.get("actions"), join_path(failure_path, "actions"), issues
        )
        if reset_period is not None and restart_delay is not None and actions is not None:
            failure_actions = FailureActions(
                reset_period=reset_period, restart_delay=restart_delay, actions=actions
            )

    fields = {
        "service_name": _str_field(payload, path, "serviceName", issues),
        "display_name": _str_field(payload, path, "displayName", issues),
        "description": _str_field(payload, path, "description", issues),
        "start_type": _str_field(payload, path, "startType", issues),
        "delayed_auto_start": _bool_field(payload, path, "delayedAutoStart", issues),
        "failure_actions": failure_actions,
    }
    if any(value is None for value in fields.values()):
        return None
    return ServiceSettings(**fields)  # type: ignore[arg-type]


def _decode_actions(
    value: object, path: str, issues: _StructureIssues
) -> tuple[FailureAction, ...] | None:
    if not isinstance(value, list):
        issues.add(path, f"expected array, got {_type_name(value)}")
        return None
    actions: list[FailureAction] = []
    ok = True
    for index, item in enumerate(value):
        item_path = join_path(path, index)
        item_obj = _as_object(item, item_path, issues)
        if item_obj is None:
            ok = False
            continue
        action_type = _str_field(item_obj, item_path, "type", issues)
        delay = _int_field(item_obj, item_path, "delay", issues)
        if action_type is None or delay is None:
            ok = False
            continue
        actions.append(FailureAction(type=action_type, delay=delay))
    return tuple(actions) if ok else None


def _decode_monitoring(
    payload: Mapping[str, object], path: str, issues: _StructureIssues
) -> MonitoringSettings | None:
    fields = {
        "enable_health_check": _bool_field(payload, path, "enableHealthCheck", issues),
        "health_check_interval": _int_field(payload, path, "healthCheckInterval", issues),
        "health_check_timeout": _int_field(payload, path, "healthCheckTimeout", issues),
        "enable_windows_event_log": _bool_field(payload, path, "enableWindowsEventLog", issues),
        "event_log_source": _str_field(payload, path, "eventLogSource", issues),
        "enable_file_logging": _bool_field(payload, path, "enableFileLogging", issues),
        "log_file_path": _str_field(payload, path, "logFilePath", issues),
        "log_level": _str_field(payload, path, "logLevel", issues),
        "max_log_size_mb": _int_field(payload, path, "maxLogSizeMB", issues),
        "max_log_files": _int_field(payload, path, "maxLogFiles", issues),
    }
    if any(value is None for value in fields.values()):
        return None
    return MonitoringSettings(**fields)  # type: ignore[arg-type]


def _decode_performance(
    payload: Mapping[str, object], path: str, issues: _StructureIssues
) -> PerformanceSettings | None:
    fields = {
        "enable_auto_restart": _bool_field(payload, path, "enableAutoRestart", issues),
        "max_restart_attempts": _int_field(payload, path, "maxRestartAttempts", issues),
        "restart_cooldown": _int_field(payload, path, "restartCooldown", issues),
        "memory_warning_threshold": _int_field(payload, path, "memoryWarningThreshold", issues),
        "memory_error_threshold": _int_field(payload, path, "memoryErrorThreshold", issues),
        "enable_slow_log_monitoring": _bool_field(
            payload, path, "enableSlowLogMonitoring", issues
        ),
        "slow_log_threshold": _int_field(payload, path, "slowLogThreshold", issues),
    }
    if any(value is None for value in fields.values()):
        return None
    return PerformanceSettings(**fields)  # type: ignore[arg-type]


def _decode_advanced(
    payload: Mapping[str, object], path: str, issues: _StructureIssues
) -> AdvancedSettings | None:
    args = _str_list_field(payload, path, "customStartupArgs", issues)
    env_path = join_path(path, "environmentVariables")
    env_obj = _as_object(payload.get("environmentVariables"), env_path, issues)
    env_pairs: list[tuple[str, str]] = []
    if env_obj is not None:
        for key, value in env_obj.items():
            if not isinstance(value, str):
                issues.add(join_path(env_path, key), f"expected string, got {_type_name(value)}")
                env_obj = None
                break
            env_pairs.append((key, value))

    scripts = {
        "pre_start_script": _str_field(payload, path, "preStartScript", issues),
        "post_start_script": _str_field(payload, path, "postStartScript", issues),
        "pre_stop_script": _str_field(payload, path, "preStopScript", issues),
        "post_stop_script": _str_field(payload, path, "postStopScript", issues),
    }
    if args is None or env_obj is None or any(value is None for value in scripts.values()):
        return None
    return AdvancedSettings(
        custom_startup_args=args,
        environment_variables=tuple(env_pairs),
        **scripts,  # type: ignore[arg-type]
    )


def _decode_metadata(
    payload: Mapping[str, object], path: str, issues: _StructureIssues
) -> Metadata | None:
    config_version = _str_field(payload, path, "configVersion", issues)
    created_by = _str_field(payload, path, "createdBy", issues)
    notes = _str_field(payload, path, "notes", issues)
    created_ok, created = _as_datetime(
        payload.get("createdDate"), join_path(path, "createdDate"), issues
    )
    modified_ok, modified = _as_datetime(
        payload.get("lastModifiedDate"), join_path(path, "lastModifiedDate"), issues
    )
    if config_version is None or created_by is None or notes is None:
        return None
    if not (created_ok and modified_ok):
        return None
    return Metadata(
        config_version=config_version,
        created_by=created_by,
        created_date=created,
        last_modified_date=modified,
        notes=notes,
    )


def _as_object(value: object, path: str, issues: _StructureIssues) -> dict[str, object] | None:
    if value is None:
        issues.add(path, "missing required section")
        return None
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {_type_name(value)}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {_type_name(key)}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _StructureIssues) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {_type_name(value)}")
        return None
    return value


def _as_backend_kind(value: object, path: str, issues: _StructureIssues) -> BackendKind | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    kind = backend_kind_of({"backendType": parsed})
    if kind is None:
        expected = ", ".join(sorted(item.value for item in BackendKind))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
    return kind


def _as_cpus(value: object, path: str, issues: _StructureIssues) -> str | None:
    # Older documents store cpus as a number.
    if isinstance(value, bool):
        issues.add(path, "expected string, got bool")
        return None
    if isinstance(value, (int, float)) and math.isfinite(float(value)):
        return str(value)
    return _as_str(value, path, issues)


def _as_datetime(
    value: object, path: str, issues: _StructureIssues
) -> tuple[bool, datetime | None]:
    if value is None:
        return True, None
    if not isinstance(value, str):
        issues.add(path, f"expected ISO-8601 timestamp, got {_type_name(value)}")
        return False, None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        issues.add(path, f"invalid ISO-8601 timestamp {value!r}")
        return False, None
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        parsed = parsed.replace(tzinfo=UTC)
    return True, parsed


def _str_field(
    payload: Mapping[str, object], path: str, key: str, issues: _StructureIssues
) -> str | None:
    return _as_str(payload.get(key), join_path(path, key), issues)


def _bool_field(
    payload: Mapping[str, object], path: str, key: str, issues: _StructureIssues
) -> bool | None:
    value = payload.get(key)
    if isinstance(value, bool):
        return value
    issues.add(join_path(path, key), f"expected boolean, got {_type_name(value)}")
    return None


def _int_field(
    payload: Mapping[str, object], path: str, key: str, issues: _StructureIssues
) -> int | None:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(join_path(path, key), f"expected integer, got {_type_name(value)}")
        return None
    return value


def _str_list_field(
    payload: Mapping[str, object], path: str, key: str, issues: _StructureIssues
) -> tuple[str, ...] | None:
    value = payload.get(key)
    field_path = join_path(path, key)
    if not isinstance(value, list):
        issues.add(field_path, f"expected array, got {_type_name(value)}")
        return None
    items: list[str] = []
    ok = True
    for index, item in enumerate(value):
        if not isinstance(item, str):
            issues.add(join_path(field_path, index), f"expected string, got {_type_name(item)}")
            ok = False
            continue
        items.append(item)
    return tuple(items) if ok else None


def _type_name(value: object) -> str:
    if value is None:
        return "null"
    return type(value).__name__


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: copy.deepcopy(value[key]) for key in sorted(value)}


__all__ = [
    "BACKEND_SECTIONS",
    "backend_kind_of",
    "decode_configuration",
    "encode_configuration",
    "merge_documents",
]
