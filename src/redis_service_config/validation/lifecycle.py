"""Service lifecycle validator: process identity, start policy and failure recovery."""

from __future__ import annotations

import re
from typing import Final

from redis_service_config.config.model import FailureActions, ServiceConfiguration, ServiceSettings
from redis_service_config.constants import DEFAULTS, ConfigDefaults
from redis_service_config.validation.result import IssueCollector, ValidationResult, join_path

MAX_NAME_LENGTH: Final[int] = 256
MAX_DESCRIPTION_LENGTH: Final[int] = 1024
LONG_ACTION_DELAY_MS: Final[int] = 5 * 60 * 1000
MAX_RECOMMENDED_ACTIONS: Final[int] = 10
MIN_RECOMMENDED_RESET_PERIOD: Final[int] = 3600
MAX_RECOMMENDED_RESET_PERIOD: Final[int] = 7 * 24 * 3600

_INVALID_NAME_CHARS: Final[frozenset[str]] = frozenset('/\\:*?"<>|')
_RESERVED_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])$", re.IGNORECASE
)

_PATH = "service"


def validate_lifecycle(
    config: ServiceConfiguration, defaults: ConfigDefaults = DEFAULTS
) -> ValidationResult:
    issues = IssueCollector()
    service = config.service

    _validate_identity(service, defaults, issues)
    _validate_start_type(service, defaults, issues)
    _validate_failure_actions(service.failure_actions, defaults, issues)

    return issues.result()


def _validate_identity(
    service: ServiceSettings, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    name_path = join_path(_PATH, "serviceName")
    name = service.service_name
    if not name.strip():
        issues.critical(name_path, "service name must not be empty")
    else:
        if len(name) > MAX_NAME_LENGTH:
            issues.error(name_path, f"service name must be at most {MAX_NAME_LENGTH} characters")
        bad = sorted({char for char in name if char in _INVALID_NAME_CHARS})
        if bad:
            issues.error(name_path, f"service name contains invalid characters: {' '.join(bad)}")
        if _RESERVED_NAME_PATTERN.fullmatch(name.strip()):
            issues.error(name_path, f"service name {name!r} is a reserved device name")
        if name == defaults.service_name:
            issues.info(name_path, f"using default service name {defaults.service_name!r}")

    display_path = join_path(_PATH, "displayName")
    if not service.display_name.strip():
        issues.error(display_path, "display name must not be empty")
    elif len(service.display_name) > MAX_NAME_LENGTH:
        issues.error(display_path, f"display name must be at most {MAX_NAME_LENGTH} characters")
    elif service.display_name == defaults.service_display_name:
        issues.info(display_path, f"using default display name {defaults.service_display_name!r}")

    description_path = join_path(_PATH, "description")
    if len(service.description) > MAX_DESCRIPTION_LENGTH:
        issues.error(
            description_path, f"description must be at most {MAX_DESCRIPTION_LENGTH} characters"
        )
    elif not service.description.strip():
        issues.info(description_path, "description is empty")


def _validate_start_type(
    service: ServiceSettings, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    path = join_path(_PATH, "startType")
    start_type = service.start_type
    if start_type not in defaults.start_types:
        expected = ", ".join(sorted(defaults.start_types))
        issues.error(path, f"invalid start type {start_type!r}; expected one of: {expected}")
    elif start_type == "Disabled":
        issues.warning(path, "service is disabled and will not start")
    elif start_type == "Manual":
        issues.info(path, "service will not start automatically at boot")
    elif service.delayed_auto_start:
        issues.info(join_path(_PATH, "delayedAutoStart"), "service start is delayed after boot")


def _validate_failure_actions(
    failure: FailureActions, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    path = join_path(_PATH, "failureActions")

    reset_path = join_path(path, "resetPeriod")
    if failure.reset_period <= 0:
        issues.error(reset_path, "reset period must be a positive number of seconds")
    elif failure.reset_period < MIN_RECOMMENDED_RESET_PERIOD:
        issues.info(reset_path, "reset period is under one hour; failure counts reset quickly")
    elif failure.reset_period > MAX_RECOMMENDED_RESET_PERIOD:
        issues.info(reset_path, "reset period is over seven days")

    if failure.restart_delay < 0:
        issues.error(join_path(path, "restartDelay"), "restart delay must not be negative")

    actions_path = join_path(path, "actions")
    if not failure.actions:
        issues.warning(
            actions_path,
            "no failure actions configured; the service will not recover automatically",
        )
        return

    if len(failure.actions) > MAX_RECOMMENDED_ACTIONS:
        issues.info(actions_path, f"more than {MAX_RECOMMENDED_ACTIONS} failure actions configured")

    for index, action in enumerate(failure.actions):
        action_path = join_path(actions_path, index)
        if action.type.lower() not in defaults.failure_action_types:
            expected = ", ".join(sorted(defaults.failure_action_types))
            issues.error(
                join_path(action_path, "type"),
                f"invalid action type {action.type!r}; expected one of: {expected}",
            )
        delay_path = join_path(action_path, "delay")
        if action.delay < 0:
            issues.error(delay_path, "delay must not be negative")
        elif action.delay > LONG_ACTION_DELAY_MS:
            issues.info(delay_path, "delay is longer than five minutes")


__all__ = ["MAX_NAME_LENGTH", "validate_lifecycle"]
