from __future__ import annotations

import os
from pathlib import Path
import shutil
import sys
import tempfile
import uuid

from _pytest.monkeypatch import MonkeyPatch
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ALLOWED_ARTIFACTS_ROOT = PROJECT_ROOT / "artifacts" / "test"
PYCACHE_PREFIX = ALLOWED_ARTIFACTS_ROOT / "pycache"
PYCACHE_PREFIX.mkdir(parents=True, exist_ok=True)
sys.dont_write_bytecode = True
sys.pycache_prefix = str(PYCACHE_PREFIX)
os.environ.setdefault("PYTHONDONTWRITEBYTECODE", "1")
os.environ.setdefault("PYTHONPYCACHEPREFIX", str(PYCACHE_PREFIX))
EXEMPT_PATH_SEGMENTS = {
    ".venv",
    ".pytest_cache",
    ".hypothesis",
    "site-packages",
    "__pycache__",
}

from three_tier_consent.utilities.logger_manager import (  # noqa: E402
    LoggerConfig,
    LoggerManager,
)


def _assert_within_allowed(path: Path) -> None:
    resolved = path.resolve()
    if resolved == ALLOWED_ARTIFACTS_ROOT or ALLOWED_ARTIFACTS_ROOT in resolved.parents:
        return
    if any(segment in resolved.parts for segment in EXEMPT_PATH_SEGMENTS):
        return
    raise RuntimeError(
        "Writes, temporary files, and artifacts must stay under 'artifacts/test/'"
    )


@pytest.fixture(scope="session", autouse=True)
def enforce_artifact_boundary():
    ALLOWED_ARTIFACTS_ROOT.mkdir(parents=True, exist_ok=True)

    mp = MonkeyPatch()
    mp.setattr(tempfile, "gettempdir", lambda: str(ALLOWED_ARTIFACTS_ROOT))

    original_mkdir = Path.mkdir
    original_write_text = Path.write_text

    def guarded_mkdir(self, *args, **kwargs):
        _assert_within_allowed(self)
        return original_mkdir(self, *args, **kwargs)

    def guarded_write_text(self, *args, **kwargs):
        _assert_within_allowed(self)
        return original_write_text(self, *args, **kwargs)

    mp.setattr(Path, "mkdir", guarded_mkdir, raising=False)
    mp.setattr(Path, "write_text", guarded_write_text, raising=False)

    yield

    mp.undo()


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("CONSENT_PIPELINE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_artifacts_dir(request) -> Path:
    safe_name = (
        request.node.nodeid.replace("::", "__").replace("/", "_").replace("\\", "_")
    )
    safe_name = "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in safe_name)
    target = ALLOWED_ARTIFACTS_ROOT / safe_name
    if target.exists():
        shutil.rmtree(target)
    target.mkdir(parents=True, exist_ok=True)
    return target


@pytest.fixture
def tmp_path(test_artifacts_dir: Path) -> Path:
    return test_artifacts_dir


@pytest.fixture
def logger_manager(tmp_path: Path) -> LoggerManager:
    # A unique logger name keeps each test's handlers pointed at its own log dir.
    return LoggerManager(
        f"three_tier_consent_test_{uuid.uuid4().hex[:8]}",
        LoggerConfig(log_dir=tmp_path / "logs", telemetry_enabled=True),
    )
