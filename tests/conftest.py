"""Shared fixtures for buildinfo updater tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from buildinfo_updater.config import get_settings

README_TEMPLATE = """# Factorio headless image

## Tags

<!-- start autogeneration tags -->
* `stale`
<!-- end autogeneration tags -->

## Usage
"""

COMPOSE_TEMPLATE = """services:
  factorio:
    # pinned by the updater
    build:
      context: .
      args:
        - VERSION=1.1.109
        - SHA256=oldsha
        - EXTRA=keep # untouched
    ports:
      - "34197:34197/udp"
"""


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are cached per process; isolate each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_repo(tmp_path: Path):
    """Return a factory laying out the three managed files under tmp_path."""

    def _make(
        manifest: dict[str, dict[str, object]],
        readme: str = README_TEMPLATE,
        compose: str = COMPOSE_TEMPLATE,
    ) -> Path:
        root = tmp_path / "repo"
        (root / "docker").mkdir(parents=True, exist_ok=True)
        (root / "buildinfo.json").write_text(
            json.dumps(manifest, indent=2) + "\n", encoding="utf-8"
        )
        (root / "README.md").write_text(readme, encoding="utf-8")
        (root / "docker" / "docker-compose.yml").write_text(compose, encoding="utf-8")
        return root

    return _make
