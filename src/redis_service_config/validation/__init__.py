"""Validation result types and shared parsing helpers.

Rule sets live in their own modules (``backend``, ``datastore``, ``lifecycle``, ``system``)
and are composed by ``redis_service_config.validation.orchestrator``.
"""

from redis_service_config.validation.common import (
    MAX_PORT,
    MIN_PORT,
    parse_memory_size,
    parse_port_mapping,
    parse_volume_mapping,
)
from redis_service_config.validation.result import (
    IssueCollector,
    Severity,
    ValidationIssue,
    ValidationResult,
    combine_all,
    join_path,
)

__all__ = [
    "IssueCollector",
    "MAX_PORT",
    "MIN_PORT",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "combine_all",
    "join_path",
    "parse_memory_size",
    "parse_port_mapping",
    "parse_volume_mapping",
]
