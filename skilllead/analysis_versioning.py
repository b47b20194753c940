"""Keeps exactly one current analysis per user."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Union, cast

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from .analysis_result import AnalysisContent
from .errors import ValidationError
from .record_store import RecordStore
from .records import Analysis, Table
from .telemetry import emit_event

logger = logging.getLogger(__name__)

AnalysisInput = Union[AnalysisContent, Mapping[str, Any]]


class AnalysisVersioning:
    """Records new analyses and resolves the latest one for a user.

    Recording flips every ``latest`` row of the user to false and inserts the
    new row with the next version number, all inside one transaction. The
    flip runs first, so the write lock is already held when the maximum
    version is read.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self._lock = asyncio.Lock()

    async def record_analysis(self, user_id: int, analysis: AnalysisInput) -> Analysis:
        content = _content_payload(analysis)
        repository = self.store.repository

        def _record(session: Session) -> Analysis:
            superseded = repository.clear_latest(session, user_id)
            version = repository.max_analysis_version(session, user_id) + 1
            stored = repository.insert(
                session,
                Table.ANALYSES,
                {**content, "user_id": user_id, "latest": True, "version": version},
            )
            if superseded > 1:
                logger.warning(
                    "Repaired %d conflicting latest analyses for user_id=%s", superseded, user_id
                )
            return cast(Analysis, stored)

        async with self._lock:
            stored = await self.store.run_in_transaction(_record, label="record_analysis")
        emit_event("analysis_recorded", user_id=user_id, analysis_id=stored.id, version=stored.version)
        return stored

    async def get_latest(self, user_id: int) -> Optional[Analysis]:
        """Return the user's current analysis.

        If more than one row claims to be latest, the highest version wins
        and the conflict is left for the next write (or :meth:`repair_latest`)
        to clean up.
        """
        candidates = await self.store.read(
            lambda session: self.store.repository.latest_analyses(session, user_id)
        )
        if not candidates:
            return None
        if len(candidates) > 1:
            _report_conflict(user_id, candidates)
        return candidates[0]

    async def repair_latest(self, user_id: int) -> Optional[Analysis]:
        """Downgrade every latest row except the highest version."""
        repository = self.store.repository

        def _repair(session: Session) -> Optional[Analysis]:
            candidates = repository.latest_analyses(session, user_id)
            if not candidates:
                return None
            winner = candidates[0]
            if len(candidates) > 1:
                repository.clear_latest(session, user_id, keep_id=winner.id)
            return winner

        async with self._lock:
            return await self.store.run_in_transaction(_repair, label="repair_latest")

    async def history(self, user_id: int) -> List[Analysis]:
        rows = cast(List[Analysis], await self.store.query(Table.ANALYSES, user_id=user_id))
        return sorted(rows, key=lambda row: (row.version, row.id or 0), reverse=True)


def _content_payload(analysis: AnalysisInput) -> dict[str, Any]:
    if isinstance(analysis, AnalysisContent):
        payload: Any = analysis.model_dump()
    elif isinstance(analysis, Mapping):
        payload = dict(analysis)
    else:
        raise ValidationError(f"Cannot record {type(analysis).__name__} as an analysis.")
    # Stored ids, versions and latest flags are dropped here; the store assigns them.
    try:
        return AnalysisContent.model_validate(payload).model_dump()
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid analysis payload: {exc}") from exc


def _report_conflict(user_id: int, candidates: List[Analysis]) -> None:
    logger.warning(
        "user_id=%s has %d analyses flagged latest; using version %s",
        user_id,
        len(candidates),
        candidates[0].version,
    )
    emit_event(
        "latest_conflict_detected",
        user_id=user_id,
        analysis_ids=[candidate.id for candidate in candidates],
        chosen_version=candidates[0].version,
    )


__all__ = ["AnalysisVersioning"]
