"""
redis-service-config — backend validator.

File: src/redis_service_config/validation/backend.py
Last updated: 2026-10-18

Purpose
- Check the active backend payload (WSL2 distribution or Docker container) for completeness
  and well-formed values.

Functional requirements
- Unknown backend kinds are critical.
- Docker port and volume mappings are parsed and checked one by one.
- No volume mappings is a warning (data will not persist), not an error.

Non-functional requirements
- Pure function of its inputs; never raises for data-shape problems.
"""

from __future__ import annotations

import re
from typing import Final

from redis_service_config.config.model import DockerBackend, ServiceConfiguration, WslBackend
from redis_service_config.constants import DEFAULTS, ConfigDefaults
from redis_service_config.validation.common import (
    is_docker_memory_limit,
    is_valid_path,
    parse_port_mapping,
    parse_volume_mapping,
)
from redis_service_config.validation.result import IssueCollector, ValidationResult, join_path

_CONTAINER_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

NO_VOLUMES_MESSAGE: Final[str] = "no volume mappings configured; data may not persist"


def validate_backend(
    config: ServiceConfiguration, defaults: ConfigDefaults = DEFAULTS
) -> ValidationResult:
    issues = IssueCollector()
    backend = config.backend
    if isinstance(backend, WslBackend):
        _validate_wsl(backend, "wsl", defaults, issues)
    elif isinstance(backend, DockerBackend):
        _validate_docker(backend, "docker", defaults, issues)
    else:
        issues.critical(
            "backendType",
            f"unknown backend kind {type(backend).__name__}; expected one of: Docker, WSL2",
        )
    return issues.result()


def _validate_wsl(
    backend: WslBackend, path: str, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    if not backend.distribution.strip():
        issues.error(join_path(path, "distribution"), "distribution must not be empty")
    elif backend.distribution == defaults.wsl_distribution:
        issues.info(
            join_path(path, "distribution"),
            f"using default distribution {defaults.wsl_distribution!r}",
        )

    for key, value in (
        ("redisPath", backend.redis_path),
        ("redisCliPath", backend.redis_cli_path),
        ("configPath", backend.config_path),
        ("dataPath", backend.data_path),
        ("logPath", backend.log_path),
        ("pidFile", backend.pid_file),
        ("windowsDataPath", backend.windows_data_path),
        ("windowsConfigPath", backend.windows_config_path),
    ):
        _require_path(value, join_path(path, key), issues)

    if backend.redis_path.strip() and "redis-server" not in backend.redis_path:
        issues.warning(
            join_path(path, "redisPath"),
            "path does not reference redis-server; make sure it points at the server binary",
        )

    if backend.health_check_interval <= 0:
        issues.error(join_path(path, "healthCheckInterval"), "must be a positive number of seconds")


def _validate_docker(
    backend: DockerBackend, path: str, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    image_path = join_path(path, "imageName")
    if not backend.image_name.strip():
        issues.error(image_path, "image name must not be empty")
    elif any(char.isspace() for char in backend.image_name.strip()):
        issues.error(image_path, "image reference must not contain whitespace")
    elif backend.image_name == defaults.docker_image:
        issues.info(image_path, f"using default image {defaults.docker_image!r}")

    container_path = join_path(path, "containerName")
    if not backend.container_name.strip():
        issues.error(container_path, "container name must not be empty")
    elif not _CONTAINER_NAME_PATTERN.fullmatch(backend.container_name):
        issues.error(
            container_path,
            "container name may contain only letters, digits, '_', '.' and '-'",
        )
    elif backend.container_name == defaults.docker_container_name:
        issues.info(
            container_path,
            f"using default container name {defaults.docker_container_name!r}",
        )

    mapping_path = join_path(path, "portMapping")
    if not backend.port_mapping.strip():
        issues.error(mapping_path, "port mapping must not be empty")
    else:
        try:
            parse_port_mapping(backend.port_mapping)
        except ValueError as exc:
            issues.error(mapping_path, str(exc))
        else:
            if backend.port_mapping == defaults.docker_port_mapping:
                issues.info(
                    mapping_path,
                    f"using default port mapping {defaults.docker_port_mapping!r}",
                )

    volumes_path = join_path(path, "volumeMappings")
    if not backend.volume_mappings:
        issues.warning(volumes_path, NO_VOLUMES_MESSAGE)
    for index, volume in enumerate(backend.volume_mappings):
        try:
            parse_volume_mapping(volume, defaults.volume_modes)
        except ValueError as exc:
            issues.error(join_path(volumes_path, index), str(exc))

    if not backend.network_mode.strip():
        issues.error(join_path(path, "networkMode"), "network mode must not be empty")

    if backend.restart_policy not in defaults.restart_policies:
        expected = ", ".join(sorted(defaults.restart_policies))
        issues.error(
            join_path(path, "restartPolicy"),
            f"invalid restart policy {backend.restart_policy!r}; expected one of: {expected}",
        )

    if backend.health_check_interval <= 0:
        issues.error(join_path(path, "healthCheckInterval"), "must be a positive number of seconds")

    limits_path = join_path(path, "resourceLimits")
    if not is_docker_memory_limit(backend.resource_limits.memory):
        issues.error(
            join_path(limits_path, "memory"),
            f"memory limit {backend.resource_limits.memory!r} must look like 512m, 1g or 1048576",
        )
    try:
        cpus = float(backend.resource_limits.cpus)
    except ValueError:
        cpus = 0.0
    if not cpus > 0:
        issues.error(join_path(limits_path, "cpus"), "cpus must be a positive number")


def _require_path(value: str, path: str, issues: IssueCollector) -> None:
    if not value.strip():
        issues.error(path, "path must not be empty")
    elif not is_valid_path(value):
        issues.error(path, f"invalid path {value!r}")


__all__ = ["NO_VOLUMES_MESSAGE", "validate_backend"]
