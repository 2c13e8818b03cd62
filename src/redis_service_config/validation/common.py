"""Shared parsing helpers for validator rule sets."""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from typing import Final

MIN_PORT: Final[int] = 1
MAX_PORT: Final[int] = 65535

_KIB: Final[int] = 1024
_UNIT_FACTORS: Final[dict[str, int]] = {
    "": 1,
    "k": _KIB,
    "m": _KIB**2,
    "g": _KIB**3,
}

_MEMORY_SIZE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(\d+)([kmg]?)(b?)$", re.IGNORECASE)
_DOCKER_MEMORY_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\d+[kmg]?$", re.IGNORECASE)
_PORT_MAPPING_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<host>[^:/]+):(?P<container>[^:/]+)(?:/(?P<proto>tcp|udp|sctp))?$", re.IGNORECASE
)
_VOLUME_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<host>(?:[A-Za-z]:)?[^:]*):(?P<container>[^:]*)(?::(?P<mode>[^:]*))?$"
)
_INVALID_PATH_CHARS: Final[frozenset[str]] = frozenset('<>"|?*')
_DRIVE_PREFIX: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z]:")


@dataclass(frozen=True, slots=True)
class PortMapping:
    host_port: int
    container_port: int
    protocol: str | None


@dataclass(frozen=True, slots=True)
class VolumeMapping:
    host_path: str
    container_path: str
    mode: str | None


def port_in_range(port: int) -> bool:
    return MIN_PORT <= port <= MAX_PORT


def parse_port_mapping(text: str) -> PortMapping:
    """Parse ``host:container[/proto]``; raise ``ValueError`` with an operator-facing message."""

    match = _PORT_MAPPING_PATTERN.fullmatch(text.strip())
    if match is None:
        raise ValueError(f"port mapping {text!r} must have the form host:container[/protocol]")
    host = _parse_port(match.group("host"), "host")
    container = _parse_port(match.group("container"), "container")
    proto = match.group("proto")
    return PortMapping(
        host_port=host,
        container_port=container,
        protocol=proto.lower() if proto is not None else None,
    )


def parse_volume_mapping(text: str, allowed_modes: frozenset[str]) -> VolumeMapping:
    """Parse ``host:container[:mode]``; a Windows drive prefix on the host side is allowed."""

    match = _VOLUME_PATTERN.fullmatch(text.strip())
    if match is None:
        raise ValueError(f"volume mapping {text!r} must have the form host:container[:mode]")
    host = match.group("host").strip()
    container = match.group("container").strip()
    mode = match.group("mode")
    if not host or _DRIVE_PREFIX.fullmatch(host):
        raise ValueError("volume mapping host path must not be empty")
    if not container:
        raise ValueError("volume mapping container path must not be empty")
    if mode is not None and mode not in allowed_modes:
        expected = ", ".join(sorted(allowed_modes))
        raise ValueError(f"invalid volume mode {mode!r}; expected one of: {expected}")
    return VolumeMapping(host_path=host, container_path=container, mode=mode)


def parse_memory_size(text: str) -> int:
    """Convert ``<digits><k|m|g>[b]`` (case-insensitive) into bytes."""

    match = _MEMORY_SIZE_PATTERN.fullmatch(text.strip())
    if match is None:
        raise ValueError(
            f"memory size {text!r} must be a positive integer with an optional unit "
            "(k, m, g, optionally followed by b)"
        )
    amount = int(match.group(1))
    return amount * _UNIT_FACTORS[match.group(2).lower()]


def is_docker_memory_limit(text: str) -> bool:
    return _DOCKER_MEMORY_PATTERN.fullmatch(text.strip()) is not None


def is_valid_ip_address(text: str) -> bool:
    try:
        ipaddress.ip_address(text.strip())
    except ValueError:
        return False
    return True


def is_valid_path(text: str) -> bool:
    """Syntactic path check that accepts both POSIX and Windows forms."""

    candidate = text.strip()
    if not candidate:
        return False
    if any(ord(char) < 32 for char in candidate):
        return False
    if any(char in _INVALID_PATH_CHARS for char in candidate):
        return False
    remainder = candidate[2:] if _DRIVE_PREFIX.match(candidate) else candidate
    return ":" not in remainder


def _parse_port(raw: str, label: str) -> int:
    try:
        port = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{label} port {raw!r} is not a number") from exc
    if not port_in_range(port):
        raise ValueError(f"{label} port must be between {MIN_PORT} and {MAX_PORT}")
    return port


__all__ = [
    "MAX_PORT",
    "MIN_PORT",
    "PortMapping",
    "VolumeMapping",
    "is_docker_memory_limit",
    "is_valid_ip_address",
    "is_valid_path",
    "parse_memory_size",
    "parse_port_mapping",
    "parse_volume_mapping",
    "port_in_range",
]
