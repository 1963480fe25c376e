"""Shared fixtures: keep every test away from the real ~/.playvideo_profiles.yaml."""

from __future__ import annotations

from pathlib import Path

import pytest

from playvideo.profiles import ENV_PROFILES_PATH


@pytest.fixture(autouse=True)
def profiles_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "home" / ".playvideo_profiles.yaml"
    monkeypatch.setenv(ENV_PROFILES_PATH, str(path))
    return path


@pytest.fixture()
def media_file(tmp_path: Path) -> Path:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path
