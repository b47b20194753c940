from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Iterator

import pytest

from skilllead.analysis_versioning import AnalysisVersioning
from skilllead.config import get_settings
from skilllead.db.base import Base
from skilllead.db.session import dispose_engine, get_engine, init_db
from skilllead.record_store import RecordStore

SAMPLE_ANALYSIS = {
    "status": "complete",
    "clarifications": [],
    "interestsConfirmed": True,
    "plans": {
        "A": {"title": "Data Engineer", "rationale": "Strong SQL background", "fitScore": 88},
        "B": {"title": "Analytics Engineer", "rationale": "Adjacent skills"},
        "C": {"title": "Backend Developer", "rationale": "Python experience"},
    },
    "summary": "Data engineering fits your profile.",
}


def _setup_db(tmp_path: Path) -> None:
    db_path = tmp_path / "skilllead.db"
    os.environ["SKILLLEAD_DATABASE_URL"] = f"sqlite:///{db_path}"
    os.environ["SKILLLEAD_CREDENTIAL_PATH"] = str(tmp_path / "provider-key.enc")
    os.environ.pop("SKILLLEAD_DEMO_MODE", None)
    get_settings.cache_clear()
    dispose_engine()
    engine = get_engine()
    Base.metadata.drop_all(engine)
    init_db()


@pytest.fixture
def store(tmp_path: Path) -> Iterator[RecordStore]:
    _setup_db(tmp_path)
    yield RecordStore()
    dispose_engine()
    get_settings.cache_clear()


@pytest.fixture
def versioning(store: RecordStore) -> AnalysisVersioning:
    return AnalysisVersioning(store)


@pytest.fixture
def sample_analysis() -> dict:
    return copy.deepcopy(SAMPLE_ANALYSIS)
