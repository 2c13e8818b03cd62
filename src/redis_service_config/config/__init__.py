"""
redis-service-config config package public API.

File: src/redis_service_config/config/__init__.py
Last updated: 2026-10-18

Purpose
- Export the configuration model, document codec, secret resolution, schema migration and
  factory entrypoints.

What should be included in this file
- Pure (no file I/O) configuration APIs.
- The disk-facing ``ConfigurationManager`` is imported from
  ``redis_service_config.config.loader``; it depends on the validators and the cache, which
  themselves depend on this package.

Non-functional requirements
- Keep import-time surface small and deterministic.
"""

from redis_service_config.config.document import (
    BACKEND_SECTIONS,
    backend_kind_of,
    decode_configuration,
    encode_configuration,
    merge_documents,
)
from redis_service_config.config.factory import (
    ConfigurationBuilder,
    create_default,
    default_document,
    from_environment,
    from_mapping,
)
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
from redis_service_config.config.secrets import (
    CredentialStoreLookup,
    EnvironmentLookup,
    SecretResolution,
    SecretResolver,
    SecretSource,
    restore_tokens,
)
from redis_service_config.config.versioning import detect_version, migrate, migration_guidance

__all__ = [
    "AdvancedSettings",
    "BACKEND_SECTIONS",
    "Backend",
    "BackendKind",
    "ConfigurationBuilder",
    "CredentialStoreLookup",
    "DockerBackend",
    "EnvironmentLookup",
    "FailureAction",
    "FailureActions",
    "Metadata",
    "MonitoringSettings",
    "PerformanceSettings",
    "RedisSettings",
    "ResourceLimits",
    "SecretBinding",
    "SecretResolution",
    "SecretResolver",
    "SecretSource",
    "ServiceConfiguration",
    "ServiceSettings",
    "WslBackend",
    "backend_kind_of",
    "create_default",
    "decode_configuration",
    "default_document",
    "detect_version",
    "encode_configuration",
    "from_environment",
    "from_mapping",
    "merge_documents",
    "migrate",
    "migration_guidance",
    "restore_tokens",
]
