"""Database-backed repository for every SkillLead record table."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union, cast

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import DateTime, delete, func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from ..db.base import Base
from ..db.models import (
    AnalysisModel,
    AppSettingsModel,
    ChatMessageModel,
    ChatThreadModel,
    ProfessionalProfileModel,
    StudentProfileModel,
    UserModel,
)
from ..errors import NotFoundError, ValidationError
from ..records import (
    RECORD_TYPES,
    Analysis,
    AppSettings,
    ProfessionalProfile,
    Record,
    Role,
    StudentProfile,
    Table,
    User,
    profile_table_for,
)

logger = logging.getLogger(__name__)

RecordInput = Union[Record, Mapping[str, Any]]
ProfileRecord = Union[StudentProfile, ProfessionalProfile]


@dataclass(frozen=True)
class TableSpec:
    table: Table
    model: type[Base]
    record: type[Record]
    order_by: Tuple[ColumnElement[Any], ...]

    @property
    def columns(self) -> frozenset[str]:
        return frozenset(self.model.__table__.columns.keys())  # type: ignore[attr-defined]

    @property
    def datetime_columns(self) -> frozenset[str]:
        return frozenset(
            column.key
            for column in self.model.__table__.columns  # type: ignore[attr-defined]
            if isinstance(column.type, DateTime)
        )


TABLE_SPECS: Dict[Table, TableSpec] = {
    Table.USERS: TableSpec(Table.USERS, UserModel, User, (UserModel.id.asc(),)),
    Table.STUDENT_PROFILES: TableSpec(
        Table.STUDENT_PROFILES, StudentProfileModel, StudentProfile, (StudentProfileModel.id.asc(),)
    ),
    Table.PROFESSIONAL_PROFILES: TableSpec(
        Table.PROFESSIONAL_PROFILES,
        ProfessionalProfileModel,
        ProfessionalProfile,
        (ProfessionalProfileModel.id.asc(),),
    ),
    Table.ANALYSES: TableSpec(Table.ANALYSES, AnalysisModel, Analysis, (AnalysisModel.id.asc(),)),
    Table.CHAT_THREADS: TableSpec(
        Table.CHAT_THREADS,
        ChatThreadModel,
        RECORD_TYPES[Table.CHAT_THREADS],
        (ChatThreadModel.created_at.desc(), ChatThreadModel.id.desc()),
    ),
    Table.CHAT_MESSAGES: TableSpec(
        Table.CHAT_MESSAGES,
        ChatMessageModel,
        RECORD_TYPES[Table.CHAT_MESSAGES],
        (ChatMessageModel.created_at.asc(), ChatMessageModel.id.asc()),
    ),
    Table.SETTINGS: TableSpec(Table.SETTINGS, AppSettingsModel, AppSettings, (AppSettingsModel.id.asc(),)),
}

# Children before parents so a wipe never leaves dangling rows mid-statement.
DELETE_ORDER: Tuple[Table, ...] = (
    Table.CHAT_MESSAGES,
    Table.CHAT_THREADS,
    Table.ANALYSES,
    Table.STUDENT_PROFILES,
    Table.PROFESSIONAL_PROFILES,
    Table.USERS,
    Table.SETTINGS,
)
INSERT_ORDER: Tuple[Table, ...] = tuple(reversed(DELETE_ORDER))


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "record"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)


class RecordRepository:
    """Typed CRUD over the record tables. Every method runs inside the caller's session."""

    def spec(self, table: Union[Table, str]) -> TableSpec:
        try:
            return TABLE_SPECS[Table(table)]
        except ValueError as exc:
            raise ValidationError(f"Unknown table: {table!r}") from exc

    # -- conversion -----------------------------------------------------

    def coerce(self, spec: TableSpec, record: RecordInput) -> Record:
        if isinstance(record, spec.record):
            return record
        if isinstance(record, BaseModel):
            payload: Any = record.model_dump()
        elif isinstance(record, Mapping):
            payload = dict(record)
        else:
            raise ValidationError(f"Cannot store {type(record).__name__} in {spec.table.value}.")
        try:
            return spec.record.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid {spec.table.value} record: {_describe(exc)}") from exc

    def _to_row(self, spec: TableSpec, record: Record, *, keep_id: bool) -> Dict[str, Any]:
        columns = set(spec.columns)
        if not keep_id or record.id is None:
            columns.discard("id")
        row = record.model_dump(mode="json", include=columns)
        for key in spec.datetime_columns & columns:
            value = getattr(record, key)
            row[key] = _utc(value) if isinstance(value, datetime) else value
        return row

    def _to_record(self, spec: TableSpec, model: Base) -> Record:
        payload = {key: getattr(model, key) for key in spec.columns}
        return spec.record.model_validate(payload)

    # -- single-record operations ---------------------------------------

    def insert(self, session: Session, table: Union[Table, str], record: RecordInput) -> Record:
        spec = self.spec(table)
        validated = self.coerce(spec, record)
        model = spec.model(**self._to_row(spec, validated, keep_id=False))
        session.add(model)
        session.flush()
        return self._to_record(spec, model)

    def get(self, session: Session, table: Union[Table, str], record_id: int) -> Optional[Record]:
        spec = self.spec(table)
        model = session.get(spec.model, record_id)
        if model is None:
            return None
        return self._to_record(spec, model)

    def require(self, session: Session, table: Union[Table, str], record_id: int) -> Record:
        record = self.get(session, table, record_id)
        if record is None:
            raise NotFoundError(self.spec(table).table.value, record_id)
        return record

    def query(
        self,
        session: Session,
        table: Union[Table, str],
        filters: Optional[Mapping[str, Any]] = None,
        *,
        limit: Optional[int] = None,
    ) -> List[Record]:
        spec = self.spec(table)
        stmt = select(spec.model).where(*self._conditions(spec, filters or {})).order_by(*spec.order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [self._to_record(spec, model) for model in session.execute(stmt).scalars()]

    def most_recent(
        self,
        session: Session,
        table: Union[Table, str],
        column: str = "updated_at",
        filters: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Record]:
        spec = self.spec(table)
        if column not in spec.columns:
            raise ValidationError(f"{spec.table.value} has no column {column!r}.")
        attribute = getattr(spec.model, column)
        stmt = (
            select(spec.model)
            .where(*self._conditions(spec, filters or {}))
            .order_by(attribute.desc(), spec.model.id.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        model = session.execute(stmt).scalar_one_or_none()
        return self._to_record(spec, model) if model is not None else None

    def update(
        self,
        session: Session,
        table: Union[Table, str],
        record_id: int,
        partial: Mapping[str, Any],
    ) -> Record:
        spec = self.spec(table)
        model = session.get(spec.model, record_id)
        if model is None:
            raise NotFoundError(spec.table.value, record_id)

        requested = {self._field_name(spec, key) for key in partial}
        if "id" in requested:
            raise ValidationError("Record ids are assigned by the store and cannot be updated.")

        existing = self._to_record(spec, model)
        merged = existing.model_dump()
        for key, value in partial.items():
            merged[self._field_name(spec, key)] = value
        try:
            changes = spec.record.model_validate(merged)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid {spec.table.value} update: {_describe(exc)}") from exc

        if "updated_at" in spec.columns and "updated_at" not in requested:
            changes = changes.model_copy(update={"updated_at": datetime.now(timezone.utc)})
            requested.add("updated_at")

        row = self._to_row(spec, changes, keep_id=False)
        for key in requested & set(row):
            setattr(model, key, row[key])
        session.flush()
        return self._to_record(spec, model)

    # -- multi-record operations ----------------------------------------

    def bulk_insert(self, session: Session, table: Union[Table, str], records: Iterable[RecordInput]) -> int:
        """Insert records keeping their ids (used by backup restore)."""
        spec = self.spec(table)
        rows = [self._to_row(spec, self.coerce(spec, record), keep_id=True) for record in records]
        if not rows:
            return 0
        session.add_all(spec.model(**row) for row in rows)
        session.flush()
        return len(rows)

    def delete_all(self, session: Session, table: Union[Table, str]) -> int:
        spec = self.spec(table)
        result = session.execute(delete(spec.model))
        return int(result.rowcount or 0)

    def wipe(self, session: Session) -> Dict[str, int]:
        removed = {table.value: self.delete_all(session, table) for table in DELETE_ORDER}
        logger.info("Removed every record: %s", removed)
        return removed

    # -- profiles -------------------------------------------------------

    def find_profile(self, session: Session, user_id: int, role: Role) -> Optional[ProfileRecord]:
        matches = self.query(session, profile_table_for(role), {"user_id": user_id}, limit=1)
        return cast(Optional[ProfileRecord], matches[0] if matches else None)

    def save_profile(self, session: Session, profile: ProfileRecord) -> ProfileRecord:
        table = profile_table_for(profile.profile_type)
        existing_id = profile.id
        if existing_id is None:
            current = self.find_profile(session, profile.user_id, profile.profile_type)
            existing_id = current.id if current else None
        if existing_id is None:
            return cast(ProfileRecord, self.insert(session, table, profile))
        payload = profile.model_dump(exclude={"id", "updated_at"})
        return cast(ProfileRecord, self.update(session, table, existing_id, payload))

    # -- analyses -------------------------------------------------------

    def latest_analyses(self, session: Session, user_id: int) -> List[Analysis]:
        stmt = (
            select(AnalysisModel)
            .where(AnalysisModel.user_id == user_id, AnalysisModel.latest.is_(True))
            .order_by(AnalysisModel.version.desc(), AnalysisModel.id.desc())
        )
        spec = TABLE_SPECS[Table.ANALYSES]
        return [cast(Analysis, self._to_record(spec, model)) for model in session.execute(stmt).scalars()]

    def clear_latest(self, session: Session, user_id: int, *, keep_id: Optional[int] = None) -> int:
        stmt = update(AnalysisModel).where(AnalysisModel.user_id == user_id, AnalysisModel.latest.is_(True))
        if keep_id is not None:
            stmt = stmt.where(AnalysisModel.id != keep_id)
        result = session.execute(stmt.values(latest=False, updated_at=datetime.now(timezone.utc)))
        return int(result.rowcount or 0)

    def max_analysis_version(self, session: Session, user_id: int) -> int:
        stmt = select(func.max(AnalysisModel.version)).where(AnalysisModel.user_id == user_id)
        return int(session.execute(stmt).scalar() or 0)

    # -- helpers --------------------------------------------------------

    def _field_name(self, spec: TableSpec, key: str) -> str:
        """Resolve a snake_case name or camelCase alias to the record field name."""
        fields = spec.record.model_fields
        if key in fields:
            return key
        for name, field in fields.items():
            if field.alias == key:
                return name
        raise ValidationError(f"{spec.table.value} has no field {key!r}.")

    def _conditions(self, spec: TableSpec, filters: Mapping[str, Any]) -> List[ColumnElement[bool]]:
        conditions: List[ColumnElement[bool]] = []
        for key, value in filters.items():
            name = self._field_name(spec, key)
            if name not in spec.columns:
                raise ValidationError(f"{spec.table.value} cannot be filtered by {name!r}.")
            column = getattr(spec.model, name)
            if value is None or isinstance(value, bool):
                conditions.append(column.is_(value))
            elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
                conditions.append(column.in_(list(value)))
            else:
                conditions.append(column == value)
        return conditions


records = RecordRepository()

__all__ = [
    "DELETE_ORDER",
    "INSERT_ORDER",
    "RecordRepository",
    "TABLE_SPECS",
    "TableSpec",
    "records",
]
