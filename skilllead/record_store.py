"""Asynchronous record store consumed by the UI layer.

Each coroutine runs its blocking database work in a worker thread inside one
``session_scope``. Work that must be all-or-nothing across several rows goes
through :meth:`RecordStore.run_in_transaction`, which executes the whole unit
in a single session so readers only ever see the committed result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union, cast

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .db.session import session_scope
from .errors import SkillLeadError, StoreError, TransactionFailure, ValidationError
from .records import (
    AppSettings,
    ChatMessage,
    ChatThread,
    ProfessionalProfile,
    Record,
    Role,
    StudentProfile,
    Table,
    User,
    profile_adapter,
)
from .repositories.records import RecordInput, RecordRepository, records
from .telemetry import emit_event

logger = logging.getLogger(__name__)

T = TypeVar("T")
ProfileRecord = Union[StudentProfile, ProfessionalProfile]


class RecordStore:
    """Typed CRUD and query operations over the seven record tables."""

    def __init__(self, repository: Optional[RecordRepository] = None) -> None:
        self.repository = repository or records

    async def _run(self, work: Callable[[Session], T], *, commit: bool = True) -> T:
        def _execute() -> T:
            with session_scope(commit=commit) as session:
                return work(session)

        try:
            return await asyncio.to_thread(_execute)
        except SkillLeadError:
            raise
        except IntegrityError as exc:
            raise ValidationError(f"Record rejected by the store: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            logger.exception("Record store operation failed")
            raise StoreError(str(exc)) from exc

    async def run_in_transaction(self, work: Callable[[Session], T], *, label: str = "transaction") -> T:
        """Run ``work`` in one transaction; any failure rolls everything back."""

        def _execute() -> T:
            with session_scope() as session:
                return work(session)

        try:
            return await asyncio.to_thread(_execute)
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s rolled back: %s", label, exc)
            raise TransactionFailure(f"{label} failed and was rolled back: {exc}") from exc

    async def read(self, work: Callable[[Session], T]) -> T:
        """Run read-only ``work`` in its own session without committing."""
        return await self._run(work, commit=False)

    # -- generic operations ---------------------------------------------

    async def insert(self, table: Union[Table, str], record: RecordInput) -> int:
        stored = await self._run(lambda session: self.repository.insert(session, table, record))
        assert stored.id is not None
        return stored.id

    async def add(self, table: Union[Table, str], record: RecordInput) -> Record:
        """Insert and return the stored record, id included."""
        return await self._run(lambda session: self.repository.insert(session, table, record))

    async def get(self, table: Union[Table, str], record_id: int) -> Optional[Record]:
        return await self._run(lambda session: self.repository.get(session, table, record_id), commit=False)

    async def require(self, table: Union[Table, str], record_id: int) -> Record:
        return await self._run(lambda session: self.repository.require(session, table, record_id), commit=False)

    async def query(self, table: Union[Table, str], **filters: Any) -> List[Record]:
        return await self._run(lambda session: self.repository.query(session, table, filters), commit=False)

    async def all(self, table: Union[Table, str]) -> List[Record]:
        return await self.query(table)

    async def update(self, table: Union[Table, str], record_id: int, partial: Mapping[str, Any]) -> None:
        await self._run(lambda session: self.repository.update(session, table, record_id, partial))

    async def delete_all(self, table: Union[Table, str]) -> None:
        await self._run(lambda session: self.repository.delete_all(session, table))

    async def wipe(self) -> None:
        removed = await self.run_in_transaction(self.repository.wipe, label="wipe")
        emit_event("store_wiped", **removed)

    # -- users ----------------------------------------------------------

    async def get_user(self, user_id: int) -> Optional[User]:
        return cast(Optional[User], await self.get(Table.USERS, user_id))

    async def get_current_user(self) -> Optional[User]:
        """The most recently updated user is the active one on this device."""
        return cast(
            Optional[User],
            await self._run(lambda session: self.repository.most_recent(session, Table.USERS), commit=False),
        )

    async def create_user(
        self, name: str, role: Role, *, is_guest: bool = False, passphrase_protected: bool = False
    ) -> User:
        payload = {"name": name, "role": role, "is_guest": is_guest, "passphrase_protected": passphrase_protected}
        return cast(User, await self.add(Table.USERS, payload))

    async def change_role(self, user_id: int, role: Role) -> None:
        await self.update(Table.USERS, user_id, {"role": role})

    # -- profiles -------------------------------------------------------

    async def get_profile(self, user_id: int, role: Role) -> Optional[ProfileRecord]:
        return await self._run(
            lambda session: self.repository.find_profile(session, user_id, role), commit=False
        )

    async def save_profile(self, profile: Union[ProfileRecord, Mapping[str, Any]]) -> ProfileRecord:
        """Update the user's profile for this role, or create it if none exists.

        Mappings are routed to the student or professional variant by ``profileType``.
        """
        validated: ProfileRecord
        if isinstance(profile, (StudentProfile, ProfessionalProfile)):
            validated = profile
        else:
            try:
                validated = profile_adapter.validate_python(dict(profile))
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid profile: {exc}") from exc
        return await self._run(lambda session: self.repository.save_profile(session, validated))

    # -- chat -----------------------------------------------------------

    async def create_thread(
        self, user_id: int, title: str, context_refs: Optional[List[str]] = None
    ) -> ChatThread:
        payload = {"user_id": user_id, "title": title, "context_refs": list(context_refs or [])}
        return cast(ChatThread, await self.add(Table.CHAT_THREADS, payload))

    async def get_chat_threads(self, user_id: int) -> List[ChatThread]:
        return cast(List[ChatThread], await self.query(Table.CHAT_THREADS, user_id=user_id))

    async def get_chat_messages(self, thread_id: int) -> List[ChatMessage]:
        return cast(List[ChatMessage], await self.query(Table.CHAT_MESSAGES, thread_id=thread_id))

    async def append_message(
        self,
        thread_id: int,
        role: str,
        content: str,
        *,
        tokens: Optional[int] = None,
        annotations: Optional[Dict[str, Any]] = None,
    ) -> ChatMessage:
        payload = {
            "thread_id": thread_id,
            "role": role,
            "content": content,
            "tokens": tokens,
            "annotations": annotations,
        }
        return cast(ChatMessage, await self.add(Table.CHAT_MESSAGES, payload))

    # -- settings -------------------------------------------------------

    async def get_settings(self) -> Optional[AppSettings]:
        """Only the most recently updated settings row is authoritative."""
        return cast(
            Optional[AppSettings],
            await self._run(lambda session: self.repository.most_recent(session, Table.SETTINGS), commit=False),
        )

    async def save_settings(self, **changes: Any) -> AppSettings:
        def _save(session: Session) -> AppSettings:
            current = self.repository.most_recent(session, Table.SETTINGS)
            if current is None:
                return cast(AppSettings, self.repository.insert(session, Table.SETTINGS, changes))
            assert current.id is not None
            return cast(AppSettings, self.repository.update(session, Table.SETTINGS, current.id, changes))

        return await self._run(_save)


__all__ = ["RecordStore"]
