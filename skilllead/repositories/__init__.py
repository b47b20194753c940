"""Repositories that translate between ORM rows and domain records."""

from .records import RecordRepository, records

__all__ = ["RecordRepository", "records"]
