"""Root conftest: applies .env.test before ride_sync.config builds its settings."""
from __future__ import annotations

import os
from pathlib import Path


def _load_test_env(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())


_load_test_env(Path(__file__).resolve().parent / ".env.test")
