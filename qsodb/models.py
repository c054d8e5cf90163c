"""Data models used by qsodb.

Two SQLModel tables: Callsign (one row per operator) and QSO (one row per
contact). CallsignInfo is the non-table shape returned by a QRZ lookup; the
Callsign table extends it with the store-assigned id and lookup timestamp.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


class CallsignInfo(SQLModel):
    """Operator metadata as returned by the lookup service.

    Attributes
    - call: Callsign, uppercased when stored.
    - first_name/name: Operator given name and surname.
    - address_line1/address_line2/state/postal_code/country: Mailing address.
    - latitude/longitude/grid_square: Location, kept as the service reports it.
    - email/license_class: Contact address and license class.
    """

    call: str = Field(description="Station callsign")
    first_name: Optional[str] = None
    name: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    grid_square: Optional[str] = None
    email: Optional[str] = None
    license_class: Optional[str] = None


class Callsign(CallsignInfo, table=True):
    """A stored callsign. `call` is unique across the table."""

    callsign_id: Optional[int] = Field(default=None, primary_key=True)
    call: str = Field(unique=True, index=True, description="Station callsign")
    looked_up_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True), description="Lookup time (UTC)"
    )


class QSO(SQLModel, table=True):
    """A single logged contact.

    The (callsign_id, date, time) triple is unique: one operator cannot be
    logged twice at the same moment. date and time are kept as the operator
    typed them (e.g. "20240101" and "1200").
    """

    __table_args__ = (
        UniqueConstraint("callsign_id", "date", "time", name="uq_qso_callsign_date_time"),
    )

    qso_id: Optional[int] = Field(default=None, primary_key=True)
    callsign_id: int = Field(foreign_key="callsign.callsign_id", index=True)
    date: str = Field(nullable=False, description="QSO date")
    time: str = Field(nullable=False, description="QSO time")

    # Radio details
    band: Optional[str] = Field(default=None, index=True)
    frequency: Optional[float] = Field(default=None, description="Frequency in MHz")
    mode: Optional[str] = Field(default=None, index=True)

    # Reports
    rst_sent: Optional[str] = None
    rst_received: Optional[str] = None

    # Misc
    comment: Optional[str] = None
    confirmed: Optional[bool] = None


def now_utc() -> datetime:
    """Return the current UTC time, timezone-aware, without microseconds."""
    return datetime.now(UTC).replace(microsecond=0)


def normalize_call(call: Optional[str]) -> str:
    """Strip and uppercase a callsign; None becomes an empty string."""
    return (call or "").strip().upper()
