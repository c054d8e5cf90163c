"""Persistence layer: SQLite engine setup, schema creation, and record inserts.

The database lives in the user's data directory by default, and can be
overridden via the QSODB_PATH environment variable or an explicit location.
Uniqueness and foreign-key rules are enforced by SQLite itself; this module
translates the resulting IntegrityErrors into the errors in `qsodb.errors`.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Mapping, Optional, Set, Tuple, Type, Union

from platformdirs import user_data_dir
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from .errors import (
    CreationCancelled,
    DuplicateCallsign,
    DuplicateQso,
    InvalidRecord,
    SchemaMismatch,
    StoreError,
    UnknownCallsign,
)
from .models import QSO, Callsign, CallsignInfo, normalize_call, now_utc

APP_NAME = "qsodb"
DB_ENV_VAR = "QSODB_PATH"

logger = logging.getLogger(__name__)

TABLES = {"callsign": Callsign, "qso": QSO}


def _default_db_path() -> Path:
    """Return the default location of the SQLite database file."""
    data_dir = Path(user_data_dir(appname=APP_NAME, appauthor=False))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "qso.sqlite3"


def get_db_path() -> Path:
    """Resolve the default database path, honoring QSODB_PATH if set."""
    env = os.getenv(DB_ENV_VAR)
    if env:
        p = Path(env).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    return _default_db_path()


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite leaves foreign keys off unless asked per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _table_for(kind: Union[str, Type[SQLModel]]) -> Type[SQLModel]:
    if isinstance(kind, str):
        try:
            return TABLES[kind.lower()]
        except KeyError:
            raise ValueError(f"Unknown record kind: {kind!r}") from None
    if kind in TABLES.values():
        return kind
    raise ValueError(f"Unknown record kind: {kind!r}")


class QSOStore:
    """SQLite-backed store for callsigns and QSOs.

    The engine is created on first use and kept for the life of the process.
    Constructing a store never touches the file.
    """

    def __init__(self, location: Union[str, Path, None] = None) -> None:
        self.path = Path(location).expanduser() if location else get_db_path()
        self._engine: Optional[Engine] = None

    def __repr__(self) -> str:
        return f"QSOStore({str(self.path)!r})"

    @property
    def engine(self) -> Engine:
        """Create (once) and return the SQLAlchemy engine bound to our SQLite file.

        Raises StoreError if the engine cannot be created.
        """
        if self._engine is None:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                engine = create_engine(f"sqlite:///{self.path}", echo=False)
                event.listen(engine, "connect", _enable_foreign_keys)
            except (OSError, SQLAlchemyError) as e:
                raise StoreError(f"Failed to open database {self.path}: {e}") from e
            logger.debug("Opened database %s", self.path)
            self._engine = engine
        return self._engine

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Yield a Session bound to our engine, rolling back on errors."""
        session = Session(self.engine)
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # Schema

    def has_data(self) -> bool:
        """True when the database file exists and is not empty."""
        return self.path.exists() and self.path.stat().st_size > 0

    def create_schema(self, confirm: Optional[Callable[[Path], bool]] = None) -> Path:
        """Create the callsign and qso tables if they don't exist yet.

        Existing tables are never dropped or altered. When the file already
        holds data, `confirm(path)` must return True or CreationCancelled is
        raised before anything is touched.
        """
        if self.has_data():
            logger.warning("Database %s already exists", self.path)
            if confirm is None or not confirm(self.path):
                raise CreationCancelled(f"Schema creation in {self.path} was not confirmed")
        try:
            SQLModel.metadata.create_all(
                self.engine, tables=[Callsign.__table__, QSO.__table__]
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create database tables: {e}") from e
        logger.info("Schema ready in %s", self.path)
        return self.path

    @staticmethod
    def columns_of(kind: Union[str, Type[SQLModel]]) -> Set[str]:
        """Return the column names of a table, without its primary key.

        `kind` is "callsign", "qso", or the model class itself.
        """
        table = _table_for(kind).__table__
        return {c.name for c in table.columns if not c.primary_key}

    def check_columns(self, kind: Union[str, Type[SQLModel]], fields: Mapping[str, object]) -> None:
        """Raise SchemaMismatch unless `fields` has exactly the expected columns."""
        expected = self.columns_of(kind)
        got = set(fields)
        if got != expected:
            name = kind if isinstance(kind, str) else _table_for(kind).__tablename__
            raise SchemaMismatch(name, expected - got, got - expected)

    # Inserts

    def insert_callsign(self, record: Union[Callsign, CallsignInfo]) -> int:
        """Persist a copy of `record` and return its new id.

        Raises InvalidRecord if `call` is blank and DuplicateCallsign if it is
        already stored.
        """
        call = normalize_call(record.call)
        if not call:
            raise InvalidRecord("Callsign record requires a non-empty call")
        row = Callsign(**record.model_dump())
        row.callsign_id = None
        row.call = call
        if row.looked_up_at is None:
            row.looked_up_at = now_utc()

        try:
            with self.session_scope() as session:
                session.add(row)
                session.commit()
                session.refresh(row)
                callsign_id = row.callsign_id
        except IntegrityError as e:
            raise DuplicateCallsign(call) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save callsign {call}: {e}") from e
        logger.info("Added callsign %s (id=%s)", call, callsign_id)
        return callsign_id

    def insert_qso(self, record: QSO) -> int:
        """Persist a new QSO and return its id.

        Raises InvalidRecord when callsign_id, date or time is missing,
        UnknownCallsign for a dangling callsign_id, and DuplicateQso when the
        operator is already logged at that date and time.
        """
        missing = [
            name
            for name in ("callsign_id", "date", "time")
            if getattr(record, name) is None or getattr(record, name) == ""
        ]
        if missing:
            raise InvalidRecord(f"QSO record requires {', '.join(missing)}")
        callsign_id, date, time = record.callsign_id, record.date, record.time

        try:
            with self.session_scope() as session:
                session.add(record)
                session.commit()
                session.refresh(record)
                qso_id = record.qso_id
        except IntegrityError as e:
            if "FOREIGN KEY" in str(e.orig).upper():
                raise UnknownCallsign(callsign_id) from e
            raise DuplicateQso(callsign_id, date, time) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save QSO: {e}") from e
        logger.debug("Logged QSO id=%s for callsign id=%s", qso_id, callsign_id)
        return qso_id

    # Queries

    def find_callsign_id(self, call: str) -> Optional[int]:
        """Return the id stored for `call`, or None if it has never been added."""
        call = normalize_call(call)
        try:
            with self.session_scope() as session:
                stmt = select(Callsign.callsign_id).where(Callsign.call == call)
                return session.exec(stmt).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to look up callsign {call}: {e}") from e

    def get_callsign(self, call: str) -> Optional[Callsign]:
        """Fetch the stored record for `call`, or None if missing."""
        call = normalize_call(call)
        try:
            with self.session_scope() as session:
                return session.exec(select(Callsign).where(Callsign.call == call)).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to retrieve callsign {call}: {e}") from e

    def get_callsign_by_id(self, callsign_id: int) -> Optional[Callsign]:
        """Fetch a callsign by primary key, or None if missing."""
        try:
            with self.session_scope() as session:
                return session.get(Callsign, callsign_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to retrieve callsign id {callsign_id}: {e}") from e

    def list_qsos(self, limit: int = 100, call: Optional[str] = None) -> List[Tuple[QSO, Callsign]]:
        """Return recent QSOs with their callsign, optionally filtering by callsign substring."""
        try:
            with self.session_scope() as session:
                stmt = select(QSO, Callsign).join(
                    Callsign, QSO.callsign_id == Callsign.callsign_id
                )
                if call:
                    stmt = stmt.where(Callsign.call.ilike(f"%{call}%"))
                stmt = stmt.order_by(QSO.date.desc(), QSO.time.desc()).limit(limit)
                return list(session.exec(stmt))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list QSOs: {e}") from e
