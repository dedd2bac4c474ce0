from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    """Guarantee the repository root is discoverable for absolute imports."""

    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_ensure_project_root_on_path()


@pytest.fixture(autouse=True)
def _isolated_updater_env(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Keep updater logs and environment overrides away from real user data."""

    log_dir = tmp_path_factory.mktemp("updater-logs")
    monkeypatch.setenv("SELF_UPDATER_LOG_DIR", str(log_dir))
    monkeypatch.delenv("SELF_UPDATER_LOG_FILE", raising=False)
    for name in ("SELF_UPDATER_TEMP_DIR", "SELF_UPDATER_UNZIP_TOOL", "SELF_UPDATER_EXTRACTOR"):
        monkeypatch.delenv(name, raising=False)
    yield
