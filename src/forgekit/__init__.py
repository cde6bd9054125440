"""
forgekit — build-lifecycle developer tooling.

File: src/forgekit/__init__.py

Purpose
- Package root. Model/migration generation, workspace version propagation,
  CI fan-out across workspace resources, and seeded fuzzy scenarios.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
