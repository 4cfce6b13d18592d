from __future__ import annotations

from pathlib import Path

import pytest

from site_capture.pipeline import CaptureConfig


@pytest.fixture
def staging_parent(tmp_path: Path) -> Path:
    parent = tmp_path / "staging"
    parent.mkdir()
    return parent


@pytest.fixture
def capture_config(staging_parent: Path) -> CaptureConfig:
    return CaptureConfig(timeout_s=2, staging_parent=staging_parent)
