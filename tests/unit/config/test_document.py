"""
redis-service-config — unit tests for the configuration model and document codec

File: tests/unit/config/test_document.py
Last updated: 2026-10-18

Purpose
- Verify that documents decode into the immutable model and encode back without loss.

What this test file should cover
- Encode/decode round trip for both backend kinds.
- Structural decode failures listing every offending path.
- Equality ignoring secret bindings; dotted binding paths.
- Deterministic deep merge.

Functional requirements
- Offline only.

Non-functional requirements
- Deterministic.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError, replace
from datetime import UTC, datetime

import pytest

from redis_service_config.config.document import (
    backend_kind_of,
    decode_configuration,
    encode_configuration,
    merge_documents,
)
from redis_service_config.config.factory import create_default, default_document
from redis_service_config.config.model import (
    BackendKind,
    DockerBackend,
    SecretBinding,
    WslBackend,
)
from redis_service_config.errors import ConfigLoadError

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize("kind", [BackendKind.WSL2, BackendKind.DOCKER])
def test_encode_decode_round_trip_preserves_every_field(kind: BackendKind) -> None:
    config = create_default(kind, now=FIXED_NOW)

    decoded = decode_configuration(encode_configuration(config))

    assert decoded == config
    assert decoded.backend_kind is kind


def test_encoded_document_carries_only_the_active_backend_section() -> None:
    wsl_doc = default_document(BackendKind.WSL2, now=FIXED_NOW)
    docker_doc = default_document(BackendKind.DOCKER, now=FIXED_NOW)

    assert wsl_doc["backendType"] == "WSL2"
    assert "wsl" in wsl_doc and "docker" not in wsl_doc
    assert docker_doc["backendType"] == "Docker"
    assert "docker" in docker_doc and "wsl" not in docker_doc
    assert wsl_doc["metadata"]["createdDate"] == "2026-03-01T12:00:00Z"


def test_backend_union_exposes_exactly_one_variant() -> None:
    wsl = create_default(BackendKind.WSL2, now=FIXED_NOW)
    docker = create_default(BackendKind.DOCKER, now=FIXED_NOW)

    assert isinstance(wsl.backend, WslBackend)
    assert wsl.wsl is not None and wsl.docker is None
    assert isinstance(docker.backend, DockerBackend)
    assert docker.docker is not None and docker.wsl is None


def test_decode_reports_every_structural_issue_with_its_path() -> None:
    document = default_document(BackendKind.WSL2, now=FIXED_NOW)
    document["redis"]["port"] = "6379"
    document["monitoring"]["enableHealthCheck"] = "yes"
    del document["service"]

    with pytest.raises(ConfigLoadError) as excinfo:
        decode_configuration(document)

    issues = excinfo.value.issues
    assert "redis.port: expected integer, got str" in issues
    assert "monitoring.enableHealthCheck: expected boolean, got str" in issues
    assert "service: missing required section" in issues


def test_decode_rejects_unknown_backend_kind() -> None:
    document = default_document(BackendKind.WSL2, now=FIXED_NOW)
    document["backendType"] = "Hyper-V"

    with pytest.raises(ConfigLoadError) as excinfo:
        decode_configuration(document)

    issues = excinfo.value.issues
    assert any(issue.startswith("backendType: invalid value 'Hyper-V'") for issue in issues)


def test_decode_rejects_booleans_where_integers_are_expected() -> None:
    document = default_document(BackendKind.WSL2, now=FIXED_NOW)
    document["redis"]["port"] = True

    with pytest.raises(ConfigLoadError) as excinfo:
        decode_configuration(document)

    assert excinfo.value.issues == ("redis.port: expected integer, got bool",)


def test_numeric_docker_cpus_are_accepted_as_text() -> None:
    document = default_document(BackendKind.DOCKER, now=FIXED_NOW)
    document["docker"]["resourceLimits"]["cpus"] = 2

    config = decode_configuration(document)

    assert config.docker is not None
    assert config.docker.resource_limits.cpus == "2"


def test_naive_timestamps_are_read_as_utc() -> None:
    document = default_document(BackendKind.WSL2, now=FIXED_NOW)
    document["metadata"]["createdDate"] = "2026-03-01T12:00:00"

    config = decode_configuration(document)

    assert config.metadata.created_date == FIXED_NOW


def test_equality_ignores_secret_bindings() -> None:
    config = create_default(BackendKind.WSL2, now=FIXED_NOW)
    bound = replace(
        config,
        secret_bindings=(
            SecretBinding(path=("redis", "password"), token="${ENV:PW}", value_digest="x"),
        ),
    )

    assert bound == config
    assert bound.binding_for("redis.password") is not None
    assert config.binding_for("redis.password") is None


def test_secret_binding_renders_list_indexes() -> None:
    binding = SecretBinding(path=("advanced", "customStartupArgs", 2), token="t", value_digest="d")

    assert binding.dotted == "advanced.customStartupArgs[2]"


def test_configuration_is_immutable_and_password_is_kept_out_of_repr() -> None:
    config = create_default(BackendKind.WSL2, now=FIXED_NOW)
    secret = replace(config, redis=replace(config.redis, password="Sup3r-Secret!"))

    with pytest.raises(FrozenInstanceError):
        secret.redis.port = 1  # type: ignore[misc]
    assert "Sup3r-Secret!" not in repr(secret.redis)


def test_merge_documents_is_deep_and_replaces_lists() -> None:
    base = {"redis": {"port": 6379, "bindAddress": "127.0.0.1"}, "args": ["a", "b"]}
    overlay = {"redis": {"port": 6380}, "args": ["c"]}

    merged = merge_documents(base, overlay)

    assert merged == {"args": ["c"], "redis": {"bindAddress": "127.0.0.1", "port": 6380}}
    assert base["redis"]["port"] == 6379


def test_backend_kind_lookup_is_case_insensitive() -> None:
    assert backend_kind_of({"backendType": "docker"}) is BackendKind.DOCKER
    assert backend_kind_of({"backendType": " wsl2 "}) is BackendKind.WSL2
    assert backend_kind_of({"backendType": 3}) is None
