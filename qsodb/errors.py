"""Exception hierarchy for qsodb.

Store errors come from constraint checks in the SQLite layer; QRZ errors carry
the message the remote service returned. Nothing here is retried.
"""

from __future__ import annotations

from typing import Iterable

__all__ = [
    "QSODBError",
    "StoreError",
    "InvalidRecord",
    "DuplicateCallsign",
    "DuplicateQso",
    "UnknownCallsign",
    "SchemaMismatch",
    "CreationCancelled",
    "QRZError",
    "AuthenticationError",
    "QRZLookupError",
]


class QSODBError(Exception):
    """Root exception for all qsodb errors."""


# Store

class StoreError(QSODBError):
    """Raised when a database operation fails."""


class InvalidRecord(StoreError, ValueError):
    """Raised when a record is missing a required field."""


class DuplicateCallsign(StoreError):
    """Raised when inserting a callsign that is already stored."""

    def __init__(self, call: str) -> None:
        super().__init__(f"Callsign {call} already exists")
        self.call = call


class DuplicateQso(StoreError):
    """Raised when (callsign_id, date, time) is already logged."""

    def __init__(self, callsign_id: int, date: str, time: str) -> None:
        super().__init__(f"QSO with callsign id {callsign_id} at {date} {time} already exists")
        self.callsign_id = callsign_id
        self.date = date
        self.time = time


class UnknownCallsign(StoreError):
    """Raised when a QSO references a callsign id that does not exist."""

    def __init__(self, callsign_id: int) -> None:
        super().__init__(f"No callsign with id {callsign_id}")
        self.callsign_id = callsign_id


class SchemaMismatch(StoreError):
    """Raised when a record's fields differ from the table's columns."""

    def __init__(self, kind: str, missing: Iterable[str], unexpected: Iterable[str]) -> None:
        self.kind = kind
        self.missing = sorted(missing)
        self.unexpected = sorted(unexpected)
        parts = []
        if self.missing:
            parts.append(f"missing {', '.join(self.missing)}")
        if self.unexpected:
            parts.append(f"unexpected {', '.join(self.unexpected)}")
        super().__init__(f"{kind} record does not match table columns: {'; '.join(parts)}")


class CreationCancelled(StoreError):
    """Raised when schema creation over an existing database is not confirmed."""


# QRZ

class QRZError(QSODBError, LookupError):
    """Base class for errors reported by the QRZ lookup service."""


class AuthenticationError(QRZError):
    """Raised when QRZ rejects the login."""


class QRZLookupError(QRZError):
    """Raised when QRZ rejects a callsign query (not found, rate-limited, expired session)."""
