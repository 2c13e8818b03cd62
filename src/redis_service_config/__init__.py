"""
redis-service-config — package root

File: src/redis_service_config/__init__.py
Last updated: 2026-10-18

Purpose
- Configuration validation, secret resolution and safe hot reload for a Windows-hosted
  Redis service running on a WSL2 or Docker backend.

What should be included in this file
- Version export only; public APIs live in the subpackages.
- Import boundary rules: avoid importing heavy submodules at import time.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
