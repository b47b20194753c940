"""Tests for the single-latest analysis invariant and version numbering."""

from __future__ import annotations

import asyncio

import pytest

from skilllead.analysis_result import AnalysisContent
from skilllead.analysis_versioning import AnalysisVersioning
from skilllead.errors import ValidationError
from skilllead.record_store import RecordStore
from skilllead.records import Analysis, Table
from skilllead.telemetry import capture_events


async def _latest_rows(store: RecordStore, user_id: int) -> list:
    return await store.query(Table.ANALYSES, user_id=user_id, latest=True)


@pytest.mark.asyncio
async def test_record_analysis_sets_single_latest(
    store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict
) -> None:
    user = await store.create_user("Ada", "student")

    first = await versioning.record_analysis(user.id, sample_analysis)
    second = await versioning.record_analysis(user.id, sample_analysis)
    third = await versioning.record_analysis(user.id, AnalysisContent.model_validate(sample_analysis))

    assert [first.version, second.version, third.version] == [1, 2, 3]
    latest_rows = await _latest_rows(store, user.id)
    assert [row.id for row in latest_rows] == [third.id]

    latest = await versioning.get_latest(user.id)
    assert latest is not None
    assert latest.id == third.id
    assert latest.plans.a.title == "Data Engineer"


@pytest.mark.asyncio
async def test_get_latest_without_analysis_returns_none(store: RecordStore, versioning: AnalysisVersioning) -> None:
    user = await store.create_user("Empty", "professional")

    assert await versioning.get_latest(user.id) is None


@pytest.mark.asyncio
async def test_versions_are_per_user_under_interleaving(
    store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict
) -> None:
    alice = await store.create_user("Alice", "student")
    bob = await store.create_user("Bob", "professional")

    await asyncio.gather(
        *(
            versioning.record_analysis(user_id, sample_analysis)
            for _ in range(4)
            for user_id in (alice.id, bob.id)
        )
    )

    for user in (alice, bob):
        history = await versioning.history(user.id)
        assert sorted(row.version for row in history) == [1, 2, 3, 4]
        assert [row.version for row in history if row.latest] == [4]


@pytest.mark.asyncio
async def test_invalid_analysis_is_rejected_without_flipping_latest(
    store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict
) -> None:
    user = await store.create_user("Careful", "student")
    kept = await versioning.record_analysis(user.id, sample_analysis)

    with pytest.raises(ValidationError):
        await versioning.record_analysis(user.id, {"summary": "missing plans"})

    latest = await versioning.get_latest(user.id)
    assert latest is not None
    assert latest.id == kept.id


@pytest.mark.asyncio
async def test_conflicting_latest_prefers_highest_version_and_repairs(
    store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict
) -> None:
    user = await store.create_user("Corrupt", "student")
    for version in (2, 5, 3):
        await store.insert(
            Table.ANALYSES, {**sample_analysis, "userId": user.id, "latest": True, "version": version}
        )

    with capture_events() as events:
        latest = await versioning.get_latest(user.id)

    assert latest is not None
    assert latest.version == 5
    assert any(event.name == "latest_conflict_detected" for event in events)

    repaired = await versioning.repair_latest(user.id)
    assert repaired is not None
    assert repaired.version == 5
    latest_rows = await _latest_rows(store, user.id)
    assert [row.version for row in latest_rows] == [5]


@pytest.mark.asyncio
async def test_next_write_resolves_conflict(
    store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict
) -> None:
    user = await store.create_user("Recover", "professional")
    for version in (1, 2):
        await store.insert(Table.ANALYSES, {**sample_analysis, "userId": user.id, "latest": True, "version": version})

    recorded = await versioning.record_analysis(user.id, sample_analysis)

    assert recorded.version == 3
    latest_rows = await _latest_rows(store, user.id)
    assert [row.id for row in latest_rows] == [recorded.id]
    assert isinstance(latest_rows[0], Analysis)


@pytest.mark.asyncio
async def test_record_analysis_emits_event(
    store: RecordStore, versioning: AnalysisVersioning, sample_analysis: dict
) -> None:
    user = await store.create_user("Observed", "student")

    with capture_events() as events:
        stored = await versioning.record_analysis(user.id, sample_analysis)

    recorded = [event for event in events if event.name == "analysis_recorded"]
    assert recorded and recorded[0].payload["analysis_id"] == stored.id
    assert recorded[0].payload["version"] == 1
