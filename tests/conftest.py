"""Shared fixtures."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pytest


@pytest.fixture(autouse=True)
def _detach_event_sink():
    """Keep the module-level event sink from leaking between tests."""
    from studioreport.logging.events import reset_sink

    reset_sink()
    yield
    reset_sink()


@pytest.fixture
def demo_rows() -> dict[str, Any]:
    from studioreport.project import DEMO_ROWS

    return copy.deepcopy(DEMO_ROWS)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    from studioreport.project import scaffold_project

    return scaffold_project(tmp_path / "proj")
