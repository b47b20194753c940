"""Tests for whole-store backup export and transactional restore."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from skilllead.analysis_versioning import AnalysisVersioning
from skilllead.backup import BACKUP_VERSION, BackupCodec
from skilllead.errors import TransactionFailure, ValidationError
from skilllead.record_store import RecordStore
from skilllead.records import StudentProfile, Table
from skilllead.telemetry import capture_events


async def _seed(store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict) -> None:
    user = await store.create_user("Backup User", "student")
    await store.save_profile(StudentProfile(user_id=user.id, interests=["robotics"]))
    await versioning.record_analysis(user.id, sample_analysis)
    await versioning.record_analysis(user.id, sample_analysis)
    thread = await store.create_thread(user.id, "Plan A questions", ["analysis"])
    await store.append_message(thread.id, "user", "What should I learn first?")
    await store.append_message(thread.id, "assistant", "Start with SQL.", tokens=12)
    await store.save_settings(theme="dark", openai_key_stored="session")


async def _snapshot(store: RecordStore) -> dict:
    snapshot = {}
    for table in Table:
        rows = await store.all(table)
        snapshot[table.value] = sorted(
            (json.dumps(row.model_dump(mode="json", by_alias=True), sort_keys=True) for row in rows)
        )
    return snapshot


@pytest.mark.asyncio
async def test_export_shape(store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict) -> None:
    await _seed(store, versioning, sample_analysis)

    document = await BackupCodec(store).export_all()

    assert document["version"] == BACKUP_VERSION
    datetime.fromisoformat(document["exported"])
    assert set(document["data"]) == {
        "users",
        "studentProfiles",
        "professionalProfiles",
        "analyses",
        "chatThreads",
        "chatMessages",
        "settings",
    }
    user_row = document["data"]["users"][0]
    assert "isGuest" in user_row and "id" in user_row
    assert "planADeepDive" in document["data"]["analyses"][0]


@pytest.mark.asyncio
async def test_import_of_export_restores_identical_rows(
    store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict
) -> None:
    await _seed(store, versioning, sample_analysis)
    codec = BackupCodec(store)
    before = await _snapshot(store)
    document = await codec.export_all()

    await store.wipe()
    await store.create_user("Interloper", "professional")
    restored = await codec.import_data(document)

    assert restored["users"] == 1
    assert restored["analyses"] == 2
    assert await _snapshot(store) == before


@pytest.mark.asyncio
async def test_import_failure_leaves_all_tables_untouched(
    store: RecordStore,
    versioning: AnalysisVersioning,
    sample_analysis: dict,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    await _seed(store, versioning, sample_analysis)
    codec = BackupCodec(store)
    document = await codec.export_all()
    await store.create_user("Added after export", "professional")
    before = await _snapshot(store)

    original_bulk_insert = store.repository.bulk_insert

    def _failing_bulk_insert(session, table, records):
        if Table(table) is Table.CHAT_MESSAGES:
            raise RuntimeError("disk full")
        return original_bulk_insert(session, table, records)

    monkeypatch.setattr(store.repository, "bulk_insert", _failing_bulk_insert)

    with pytest.raises(TransactionFailure) as excinfo:
        await codec.import_data(document)

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert await _snapshot(store) == before


@pytest.mark.asyncio
async def test_missing_table_keys_import_as_empty(store: RecordStore) -> None:
    await store.create_user("Replaced", "student")
    document = {
        "version": 1,
        "exported": datetime.now(timezone.utc).isoformat(),
        "data": {"users": [{"id": 7, "name": "Only", "role": "professional"}]},
    }

    restored = await BackupCodec(store).import_data(document)

    assert restored["chatMessages"] == 0
    users = await store.all(Table.USERS)
    assert [(user.id, user.name) for user in users] == [(7, "Only")]
    assert await store.all(Table.SETTINGS) == []


@pytest.mark.asyncio
async def test_null_table_entries_import_as_empty(store: RecordStore) -> None:
    await store.save_settings(theme="dark")
    document = {
        "version": 1,
        "exported": "2024-01-01T00:00:00Z",
        "data": {
            "users": [{"id": 3, "name": "Nullable", "role": "student"}],
            "settings": None,
            "chatMessages": None,
        },
    }

    restored = await BackupCodec(store).import_data(document)

    assert restored["settings"] == 0
    assert restored["chatMessages"] == 0
    users = await store.all(Table.USERS)
    assert [(user.id, user.name) for user in users] == [(3, "Nullable")]
    assert await store.all(Table.SETTINGS) == []


@pytest.mark.asyncio
async def test_invalid_rows_are_rejected_before_anything_is_cleared(store: RecordStore) -> None:
    await store.create_user("Survivor", "student")
    document = {"version": 1, "exported": "2024-01-01T00:00:00+00:00", "data": {"users": [{"id": 1}]}}

    with pytest.raises(ValidationError):
        await BackupCodec(store).import_data(document)

    assert [user.name for user in await store.all(Table.USERS)] == ["Survivor"]


@pytest.mark.asyncio
async def test_orphans_are_reported_or_rejected_in_strict_mode(store: RecordStore) -> None:
    document = {
        "version": 1,
        "exported": "2024-01-01T00:00:00+00:00",
        "data": {"studentProfiles": [{"id": 3, "userId": 99}]},
    }
    codec = BackupCodec(store)

    with pytest.raises(ValidationError):
        await codec.import_data(document, strict=True)

    with capture_events() as events:
        await codec.import_data(document)

    orphan_events = [event for event in events if event.name == "backup_orphans_detected"]
    assert orphan_events and orphan_events[0].payload["orphans"] == {"studentProfiles": [3]}
    profile = await store.get_profile(99, "student")
    assert profile is not None and profile.id == 3


@pytest.mark.asyncio
async def test_dump_and_load_round_trip(
    store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict, tmp_path: Path
) -> None:
    await _seed(store, versioning, sample_analysis)
    codec = BackupCodec(store)
    before = await _snapshot(store)
    target = tmp_path / "skilllead-backup.json"

    await codec.dump(target)
    await store.wipe()
    await codec.load(target)

    assert json.loads(target.read_text(encoding="utf-8"))["version"] == BACKUP_VERSION
    assert await _snapshot(store) == before


@pytest.mark.asyncio
async def test_load_rejects_non_json_file(store: RecordStore, tmp_path: Path) -> None:
    target = tmp_path / "broken.json"
    target.write_text("not json", encoding="utf-8")

    with pytest.raises(ValidationError):
        await BackupCodec(store).load(target)
