"""Validation result algebra tests."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from redis_service_config.validation.result import (
    IssueCollector,
    Severity,
    ValidationIssue,
    ValidationResult,
    combine_all,
    join_path,
)

_ISSUES = st.builds(
    ValidationIssue,
    path=st.sampled_from(["redis.port", "wsl.distribution", "service.serviceName"]),
    message=st.text(min_size=1, max_size=12),
    severity=st.sampled_from(list(Severity)),
)
_RESULTS = st.lists(_ISSUES, max_size=4).map(lambda items: ValidationResult(tuple(items)))


def test_empty_result_succeeds() -> None:
    assert ValidationResult.ok().success
    assert ValidationResult.ok().render() == "no issues"


def test_success_ignores_info_and_warning() -> None:
    collector = IssueCollector()
    collector.info("redis.port", "default port")
    collector.warning("redis.requirePassword", "no auth")

    assert collector.result().success


def test_error_and_critical_fail() -> None:
    assert not ValidationResult.of("redis.port", "bad", Severity.ERROR).success
    assert not ValidationResult.of("redis.password", "missing", Severity.CRITICAL).success


def test_combine_preserves_operand_order_without_deduplication() -> None:
    first = ValidationResult.of("redis.port", "a", Severity.INFO)
    second = ValidationResult.of("redis.port", "a", Severity.INFO)

    combined = first.combine(second)

    assert combined.issues == first.issues + second.issues
    assert len(combined.for_path("redis.port")) == 2


def test_severity_accessors_and_render() -> None:
    result = combine_all(
        [
            ValidationResult.of("a", "info", Severity.INFO),
            ValidationResult.of("b", "warn", Severity.WARNING),
            ValidationResult.of("c", "err", Severity.ERROR),
            ValidationResult.of("d", "crit", Severity.CRITICAL),
        ]
    )

    assert [issue.path for issue in result.infos] == ["a"]
    assert [issue.path for issue in result.warnings] == ["b"]
    assert [issue.path for issue in result.errors] == ["c"]
    assert [issue.path for issue in result.criticals] == ["d"]
    assert result.render().splitlines()[-1] == "- d: [critical] crit"


def test_severity_ranks_are_ordered() -> None:
    ranks = [severity.rank for severity in Severity]

    assert ranks == sorted(ranks)
    assert Severity.ERROR.is_failure and not Severity.WARNING.is_failure


def test_join_path_handles_keys_and_indexes() -> None:
    assert join_path("", "redis") == "redis"
    assert join_path("redis", "port") == "redis.port"
    assert join_path("docker.volumeMappings", 1) == "docker.volumeMappings[1]"


@settings(max_examples=50, deadline=None)
@given(first=_RESULTS, second=_RESULTS, third=_RESULTS)
def test_combine_is_associative(
    first: ValidationResult, second: ValidationResult, third: ValidationResult
) -> None:
    left = first.combine(second).combine(third)
    right = first.combine(second.combine(third))

    assert left.issues == right.issues


@settings(max_examples=50, deadline=None)
@given(first=_RESULTS, second=_RESULTS)
def test_combined_success_is_conjunction(first: ValidationResult, second: ValidationResult) -> None:
    assert first.combine(second).success == (first.success and second.success)
