"""Module entrypoint for ``python -m forgekit``."""

from __future__ import annotations

from forgekit.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
