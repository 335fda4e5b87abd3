"""Module entrypoint for ``python -m buildgate``."""

from __future__ import annotations

from buildgate.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
