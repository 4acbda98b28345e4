from __future__ import annotations

import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import FakeModelClient  # noqa: E402

from study_tutor.auth import UserContext  # noqa: E402
from study_tutor.storage import JsonTutorStore  # noqa: E402


@pytest.fixture
def data_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the tutor workspace at a tmp directory with no ambient config."""

    home = tmp_path / "data"
    monkeypatch.setenv("STUDY_TUTOR_DATA_HOME", str(home))
    monkeypatch.delenv("STUDY_TUTOR_CONFIG", raising=False)
    return home


@pytest.fixture
def user() -> UserContext:
    return UserContext(user_id="alice", signed_in_at="2024-01-01T00:00:00Z")


@pytest.fixture
def store(tmp_path: Path) -> JsonTutorStore:
    return JsonTutorStore(tmp_path / "store")


@pytest.fixture
def model() -> FakeModelClient:
    return FakeModelClient()
