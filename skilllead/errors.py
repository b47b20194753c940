"""Typed failures surfaced by the SkillLead core."""

from __future__ import annotations

from typing import Optional


class SkillLeadError(RuntimeError):
    """Base class for every failure the core reports to its UI collaborator."""


class ValidationError(SkillLeadError, ValueError):
    """A record is missing required fields or carries invalid values."""


class NotFoundError(SkillLeadError, LookupError):
    def __init__(self, table: str, record_id: int) -> None:
        super().__init__(f"No {table} record with id={record_id}.")
        self.table = table
        self.record_id = record_id


class StoreError(SkillLeadError):
    """The storage engine failed outside of a multi-row transaction."""


class TransactionFailure(SkillLeadError):
    """A multi-row transaction was rolled back; the cause is chained."""


class TransportError(SkillLeadError):
    """Talking to the provider failed. Never retried by the core."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class CredentialError(SkillLeadError):
    """The provider credential is missing or cannot be decrypted."""


class DecodeSkip(SkillLeadError):
    """A stream frame could not be parsed. Non-fatal: the decoder skips it."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"Skipped stream frame ({reason}): {line[:80]!r}")
        self.line = line
        self.reason = reason


__all__ = [
    "CredentialError",
    "DecodeSkip",
    "NotFoundError",
    "SkillLeadError",
    "StoreError",
    "TransactionFailure",
    "TransportError",
    "ValidationError",
]
