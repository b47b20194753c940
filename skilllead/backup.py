"""Whole-store JSON backup export and restore."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from .analysis_result import CamelModel
from .errors import ValidationError
from .record_store import RecordStore
from .records import RECORD_TYPES, Record, Table, utcnow
from .repositories.records import DELETE_ORDER, INSERT_ORDER
from .telemetry import emit_event

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1

# child table -> (foreign key field, parent table)
REFERENCES: Tuple[Tuple[Table, str, Table], ...] = (
    (Table.STUDENT_PROFILES, "user_id", Table.USERS),
    (Table.PROFESSIONAL_PROFILES, "user_id", Table.USERS),
    (Table.ANALYSES, "user_id", Table.USERS),
    (Table.CHAT_THREADS, "user_id", Table.USERS),
    (Table.CHAT_MESSAGES, "thread_id", Table.CHAT_THREADS),
)


class BackupData(CamelModel):
    """Raw rows per table; absent keys restore as empty tables."""

    users: List[Dict[str, Any]] = Field(default_factory=list)
    student_profiles: List[Dict[str, Any]] = Field(default_factory=list, alias="studentProfiles")
    professional_profiles: List[Dict[str, Any]] = Field(default_factory=list, alias="professionalProfiles")
    analyses: List[Dict[str, Any]] = Field(default_factory=list)
    chat_threads: List[Dict[str, Any]] = Field(default_factory=list, alias="chatThreads")
    chat_messages: List[Dict[str, Any]] = Field(default_factory=list, alias="chatMessages")
    settings: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator(
        "users",
        "student_profiles",
        "professional_profiles",
        "analyses",
        "chat_threads",
        "chat_messages",
        "settings",
        mode="before",
    )
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        # null restores as an empty table, same as an absent key
        return [] if value is None else value

    def rows(self, table: Table) -> List[Dict[str, Any]]:
        return getattr(self, _attribute_for(table))


class BackupEnvelope(CamelModel):
    version: int = BACKUP_VERSION
    exported: datetime = Field(default_factory=utcnow)
    data: BackupData = Field(default_factory=BackupData)


def _attribute_for(table: Table) -> str:
    for name, field in BackupData.model_fields.items():
        if (field.alias or name) == table.value:
            return name
    raise KeyError(table.value)


class BackupCodec:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def export_all(self) -> Dict[str, Any]:
        """Snapshot every table into a backup document. Read-only."""
        tables = list(Table)
        results = await asyncio.gather(*(self.store.all(table) for table in tables))
        data = {
            table.value: [record.model_dump(mode="json", by_alias=True) for record in rows]
            for table, rows in zip(tables, results)
        }
        document = {"version": BACKUP_VERSION, "exported": utcnow().isoformat(), "data": data}
        emit_event("backup_exported", counts={table: len(rows) for table, rows in data.items()})
        return document

    async def import_data(self, document: Mapping[str, Any], *, strict: bool = False) -> Dict[str, int]:
        """Replace every table with the document's rows in one transaction.

        Rows are validated before anything is deleted. Rows that reference a
        missing parent are restored and reported; ``strict=True`` rejects the
        document instead.
        """
        envelope = _parse_envelope(document)
        prepared = {table: _validate_rows(table, envelope.data.rows(table)) for table in Table}

        orphans = find_orphans(prepared)
        if orphans:
            if strict:
                raise ValidationError(f"Backup references missing parent rows: {_format_orphans(orphans)}")
            logger.warning("Restoring backup with orphaned rows: %s", _format_orphans(orphans))
            emit_event("backup_orphans_detected", orphans={table.value: ids for table, ids in orphans.items()})

        repository = self.store.repository

        def _restore(session: Session) -> Dict[str, int]:
            for table in DELETE_ORDER:
                repository.delete_all(session, table)
            return {table.value: repository.bulk_insert(session, table, prepared[table]) for table in INSERT_ORDER}

        restored = await self.store.run_in_transaction(_restore, label="import_data")
        emit_event("backup_imported", version=envelope.version, counts=restored)
        return restored

    async def dump(self, path: Union[str, Path]) -> Path:
        target = Path(path)
        document = await self.export_all()
        text = json.dumps(document, indent=2, ensure_ascii=False)
        await asyncio.to_thread(target.write_text, text, encoding="utf-8")
        logger.info("Backup written to %s", target)
        return target

    async def load(self, path: Union[str, Path], *, strict: bool = False) -> Dict[str, int]:
        source = Path(path)
        text = await asyncio.to_thread(source.read_text, encoding="utf-8")
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Backup file {source} is not valid JSON: {exc}") from exc
        return await self.import_data(document, strict=strict)


def _parse_envelope(document: Any) -> BackupEnvelope:
    if not isinstance(document, Mapping):
        raise ValidationError(f"Backup document must be an object, not {type(document).__name__}.")
    try:
        envelope = BackupEnvelope.model_validate(dict(document))
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid backup document: {exc}") from exc
    if envelope.version > BACKUP_VERSION:
        raise ValidationError(f"Unsupported backup version {envelope.version}.")
    return envelope


def _validate_rows(table: Table, rows: List[Dict[str, Any]]) -> List[Record]:
    record_type = RECORD_TYPES[table]
    validated: List[Record] = []
    for index, row in enumerate(rows):
        try:
            validated.append(record_type.model_validate(row))
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid {table.value}[{index}] in backup: {exc}") from exc
    return validated


def find_orphans(prepared: Mapping[Table, List[Record]]) -> Dict[Table, List[Optional[int]]]:
    """Child rows whose parent id is absent from the same document."""
    orphans: Dict[Table, List[Optional[int]]] = {}
    for child, field, parent in REFERENCES:
        parent_ids: Set[Optional[int]] = {record.id for record in prepared.get(parent, [])}
        missing = [record.id for record in prepared.get(child, []) if getattr(record, field) not in parent_ids]
        if missing:
            orphans[child] = missing
    return orphans


def _format_orphans(orphans: Mapping[Table, List[Optional[int]]]) -> str:
    return ", ".join(f"{table.value} ids {ids}" for table, ids in orphans.items())


__all__ = ["BACKUP_VERSION", "BackupCodec", "BackupData", "BackupEnvelope", "find_orphans"]
