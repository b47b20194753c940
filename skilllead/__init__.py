"""SkillLead core: local records, analysis versioning, provider streaming, and backups."""

from .analysis_versioning import AnalysisVersioning
from .backup import BACKUP_VERSION, BackupCodec
from .career_coach import CareerCoach
from .credentials import CredentialHolder
from .errors import (
    CredentialError,
    DecodeSkip,
    NotFoundError,
    SkillLeadError,
    StoreError,
    TransactionFailure,
    TransportError,
    ValidationError,
)
from .provider_client import ProviderClient
from .record_store import RecordStore
from .records import Table, profile_table_for
from .stream_decoder import StreamDecoder

__all__ = [
    "AnalysisVersioning",
    "BACKUP_VERSION",
    "BackupCodec",
    "CareerCoach",
    "CredentialError",
    "CredentialHolder",
    "DecodeSkip",
    "NotFoundError",
    "ProviderClient",
    "RecordStore",
    "SkillLeadError",
    "StoreError",
    "StreamDecoder",
    "Table",
    "TransactionFailure",
    "TransportError",
    "ValidationError",
    "profile_table_for",
]
