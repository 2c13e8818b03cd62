"""
redis-service-config — unit tests for change classification

File: tests/unit/reload/test_changes.py
Last updated: 2026-10-18

Purpose
- Verify how a candidate configuration is classified against the running one.

What this test file should cover
- No change, hot-applicable, restart-requiring and rejected candidates.
- Per-group classification, impact levels and secret masking in diffs.
- Monotonicity: adding changes never lowers the classification.

Functional requirements
- Offline only.

Non-functional requirements
- Deterministic; the validator clock is fixed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from redis_service_config.config.factory import ConfigurationBuilder, create_default
from redis_service_config.config.model import BackendKind
from redis_service_config.config.secrets import EnvironmentLookup, SecretResolver, SecretSource
from redis_service_config.reload.changes import (
    SECRET_PLACEHOLDER,
    ChangeAnalyzer,
    ChangeClassification,
    ChangeImpact,
    classify_path,
    diff_configurations,
    group_of,
)
from redis_service_config.security.redaction import clear_secret_values
from redis_service_config.validation.orchestrator import ConfigurationValidator

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

Mutation = Callable[[ConfigurationBuilder], ConfigurationBuilder]

_HOT_MUTATIONS: dict[str, Mutation] = {
    "monitoring_level": lambda builder: builder.with_monitoring(log_level="Warning"),
    "health_interval": lambda builder: builder.with_monitoring(health_check_interval=60),
    "notes": lambda builder: builder.with_metadata(notes="edited"),
    "slow_log": lambda builder: builder.with_performance(slow_log_threshold=20000),
}
_RESTART_MUTATIONS: dict[str, Mutation] = {
    "port": lambda builder: builder.with_port(6400),
    "max_memory": lambda builder: builder.with_redis(max_memory="1gb"),
    "service_name": lambda builder: builder.with_service(service_name="RedisCache"),
}
_ALL_MUTATIONS: dict[str, Mutation] = {**_HOT_MUTATIONS, **_RESTART_MUTATIONS}


@pytest.fixture(autouse=True)
def _clear_registry() -> Iterator[None]:
    clear_secret_values()
    yield
    clear_secret_values()


def _analyzer() -> ChangeAnalyzer:
    return ChangeAnalyzer(ConfigurationValidator(clock=lambda: FIXED_NOW))


def _builder() -> ConfigurationBuilder:
    return ConfigurationBuilder(create_default(BackendKind.WSL2, now=FIXED_NOW))


def _apply(names: list[str]) -> ConfigurationBuilder:
    builder = _builder()
    for name in names:
        builder = _ALL_MUTATIONS[name](builder)
    return builder


def test_identical_configurations_are_no_change() -> None:
    config = _builder().build()

    report = _analyzer().analyze(config, config)

    assert report.classification is ChangeClassification.NO_CHANGE
    assert report.changes == ()
    assert report.impact is ChangeImpact.LOW
    assert report.is_safe_to_apply


def test_log_level_change_is_hot_applicable_with_warning() -> None:
    previous = _builder().build()
    candidate = _builder().with_monitoring(log_level="Debug").build()

    report = _analyzer().analyze(previous, candidate)

    assert report.classification is ChangeClassification.HOT_APPLICABLE
    assert report.changed_paths() == ("monitoring.logLevel",)
    assert report.groups == {"monitoring": ChangeClassification.HOT_APPLICABLE}
    assert any(issue.path == "monitoring.logLevel" for issue in report.warnings)
    assert report.is_safe_to_apply


def test_redis_log_level_notice_to_debug_is_hot_with_warning() -> None:
    previous = _builder().with_redis(log_level="notice").build()
    candidate = _builder().with_redis(log_level="debug").build()

    report = _analyzer().analyze(previous, candidate)

    assert report.classification is ChangeClassification.HOT_APPLICABLE
    assert report.changed_paths() == ("redis.logLevel",)
    assert report.groups == {"redis": ChangeClassification.HOT_APPLICABLE}
    assert any(issue.path == "redis.logLevel" for issue in report.warnings)


def test_port_change_with_hot_changes_still_requires_restart() -> None:
    previous = _builder().build()
    candidate = (
        _builder().with_port(6381).with_monitoring(log_level="Warning").with_metadata(notes="x")
    ).build()

    report = _analyzer().analyze(previous, candidate)

    assert report.classification is ChangeClassification.REQUIRES_RESTART
    assert report.groups["monitoring"] is ChangeClassification.HOT_APPLICABLE
    assert report.groups["redis"] is ChangeClassification.REQUIRES_RESTART


def test_port_change_requires_restart() -> None:
    previous = _builder().build()
    candidate = _builder().with_port(6380).build()

    report = _analyzer().analyze(previous, candidate)

    assert report.classification is ChangeClassification.REQUIRES_RESTART
    assert report.requires_restart
    assert not report.is_safe_to_apply
    assert report.impact is ChangeImpact.CRITICAL
    (change,) = report.changes
    assert (change.path, change.old, change.new) == ("redis.port", 6379, 6380)
    assert "REQUIRES RESTART" in report.summary()


def test_invalid_candidate_is_rejected() -> None:
    previous = _builder().build()
    candidate = _builder().with_port(-1).build()

    report = _analyzer().analyze(previous, candidate)

    assert report.classification is ChangeClassification.REJECTED
    assert not report.validation.success
    assert "redis.port" in report.summary()


def test_backend_switch_is_a_restart_in_the_backend_group() -> None:
    previous = _builder().build()
    candidate = _builder().with_docker().build()

    report = _analyzer().analyze(previous, candidate)

    assert report.classification is ChangeClassification.REQUIRES_RESTART
    assert set(report.groups) == {"backend"}
    assert "backendType" in report.changed_paths()
    assert "wsl.distribution" in report.changed_paths()
    assert "docker.imageName" in report.changed_paths()


def test_password_values_are_masked_in_diffs() -> None:
    previous = _builder().with_password("Old-Passw0rd!").build()
    candidate = _builder().with_password("New-Passw0rd!").build()

    changes = diff_configurations(previous, candidate)

    (change,) = changes
    assert change.path == "redis.password"
    assert change.old == change.new == SECRET_PLACEHOLDER
    assert "Passw0rd" not in change.render()


def test_require_password_flag_is_visible_and_hot() -> None:
    previous = _builder().build()
    candidate = _builder().with_password("Str0ng!Passw0rd").build()

    changes = {change.path: change for change in diff_configurations(previous, candidate)}

    flag = changes["redis.requirePassword"]
    assert (flag.old, flag.new) == (False, True)
    assert flag.classification is ChangeClassification.HOT_APPLICABLE
    assert changes["redis.password"].new == SECRET_PLACEHOLDER


def test_secret_tokens_inside_lists_are_masked_in_diffs() -> None:
    lookup = EnvironmentLookup({"MASTER_AUTH": "s3cretValue!"})
    resolver = SecretResolver({SecretSource.ENV: lookup})
    args = ["--masterauth ${ENV:MASTER_AUTH}"]
    previous = _builder().with_advanced(custom_startup_args=args).build(resolver)
    candidate = (
        _builder()
        .with_advanced(custom_startup_args=[*args, "--appendonly yes"])
        .build(resolver)
    )

    report = _analyzer().analyze(previous, candidate)

    (change,) = report.changes
    assert change.path == "advanced.customStartupArgs"
    assert change.old == change.new == SECRET_PLACEHOLDER
    assert "s3cretValue!" not in report.summary()


def test_list_fields_are_compared_as_whole_values() -> None:
    previous = _builder().build()
    candidate = _builder().with_advanced(custom_startup_args=["--appendonly", "yes"]).build()

    (change,) = diff_configurations(previous, candidate)

    assert change.path == "advanced.customStartupArgs"
    assert change.new == ["--appendonly", "yes"]


def test_many_hot_changes_have_medium_impact() -> None:
    previous = _builder().build()
    candidate = (
        _builder()
        .with_monitoring(log_level="Warning", health_check_interval=60, max_log_files=5)
        .with_metadata(notes="x", created_by="ops")
        .with_performance(slow_log_threshold=20000)
        .build()
    )

    report = _analyzer().analyze(previous, candidate)

    assert report.classification is ChangeClassification.HOT_APPLICABLE
    assert report.impact is ChangeImpact.MEDIUM


def test_group_and_path_classification() -> None:
    assert group_of("docker.resourceLimits.cpus") == "backend"
    assert group_of("backendType") == "backend"
    assert group_of("schemaVersion") == "schema"
    assert group_of("service.failureActions.actions") == "service"
    assert classify_path("wsl.distribution") is ChangeClassification.REQUIRES_RESTART
    assert classify_path("service.startType") is ChangeClassification.REQUIRES_RESTART
    assert classify_path("service.description") is ChangeClassification.HOT_APPLICABLE


def test_classification_labels() -> None:
    assert ChangeClassification.HOT_APPLICABLE.label == "hot_applicable"
    assert ChangeClassification.NO_CHANGE < ChangeClassification.REJECTED


@settings(max_examples=40, deadline=None)
@given(
    base=st.lists(st.sampled_from(sorted(_ALL_MUTATIONS)), unique=True),
    extra=st.sampled_from(sorted(_ALL_MUTATIONS)),
)
def test_adding_changes_never_lowers_classification(base: list[str], extra: str) -> None:
    previous = _builder().build()
    analyzer = _analyzer()

    smaller = analyzer.analyze(previous, _apply(base).build())
    larger = analyzer.analyze(previous, _apply([*base, extra]).build())

    assert larger.classification >= smaller.classification


@settings(max_examples=40, deadline=None)
@given(names=st.lists(st.sampled_from(sorted(_ALL_MUTATIONS)), unique=True))
def test_classification_is_the_most_restrictive_change(names: list[str]) -> None:
    report = _analyzer().analyze(_builder().build(), _apply(names).build())

    if any(name in _RESTART_MUTATIONS for name in names):
        expected = ChangeClassification.REQUIRES_RESTART
    elif names:
        expected = ChangeClassification.HOT_APPLICABLE
    else:
        expected = ChangeClassification.NO_CHANGE
    assert report.classification is expected
