"""SQLite record store on SQLAlchemy.

Each record keeps a precomputed ``identity_key`` (lower-cased, trimmed) so
grouping and fan-out writes never depend on the database's own case folding.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import (
    Boolean, DateTime, Integer, String, Text, create_engine, func, select, update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from ..core.dedup import normalize_identity
from ..errors import PersistenceError
from ..models.breach import parse_breach_state
from ..models.record import CredentialRecord, RiskAssessment, Severity
from .base import IdentityStatus

BREACHED_MARKER = '%"breached":true%'
SAFE_MARKER = '%"breached":false%'


class Base(DeclarativeBase):
    pass


class CredentialRow(Base):
    __tablename__ = "credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, default="")
    url: Mapped[str] = mapped_column(String, default="")
    identity: Mapped[str] = mapped_column(String, default="")
    identity_key: Mapped[str] = mapped_column(String, default="", index=True)
    secret: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    source: Mapped[str] = mapped_column(String, default="manual")
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_checked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    compromised: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    breach_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    risk_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    risk_label: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    risk_factors: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: CredentialRow) -> CredentialRecord:
    risk = None
    if row.risk_score is not None and row.risk_label:
        risk = RiskAssessment(
            score=row.risk_score,
            label=Severity(row.risk_label),
            factors=json.loads(row.risk_factors or "[]"),
        )
    return CredentialRecord(
        id=row.id,
        name=row.name or "",
        url=row.url or "",
        identity=row.identity or "",
        secret=row.secret,
        source=row.source or "manual",
        created_at=_as_utc(row.created_at),
        last_checked_at=_as_utc(row.last_checked_at),
        compromised=row.compromised,
        notes=row.notes,
        breach_state=parse_breach_state(row.breach_info),
        risk=risk,
    )


class SQLRecordStore:
    def __init__(self, url: str):
        self.engine = create_engine(url)
        Base.metadata.create_all(self.engine)
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)

    @classmethod
    def from_path(cls, path: Path) -> "SQLRecordStore":
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(f"sqlite:///{path}")

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        """One session, one transaction; any database error rolls it back."""
        try:
            with self._sessions() as session, session.begin():
                yield session
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to {action}: {e}") from e

    def _eligible(self):
        return CredentialRow.identity_key.like("%@%")

    def add_records(self, records: list[CredentialRecord]) -> list[int]:
        rows = [
            CredentialRow(
                name=r.name,
                url=r.url,
                identity=r.identity,
                identity_key=normalize_identity(r.identity),
                secret=r.secret,
                source=r.source,
                created_at=r.created_at or datetime.now(timezone.utc),
                last_checked_at=r.last_checked_at,
                compromised=r.compromised,
                notes=r.notes,
            )
            for r in records
        ]
        with self._transaction("add records") as session:
            session.add_all(rows)
            session.flush()
            return [row.id for row in rows]

    def list_records(self) -> list[CredentialRecord]:
        with self._sessions() as session:
            rows = session.scalars(select(CredentialRow).order_by(CredentialRow.id)).all()
            return [_to_record(row) for row in rows]

    def get_record(self, record_id: int) -> Optional[CredentialRecord]:
        with self._sessions() as session:
            row = session.get(CredentialRow, record_id)
            return _to_record(row) if row else None

    def breach_blob(self, record_id: int) -> Optional[str]:
        with self._sessions() as session:
            return session.scalar(
                select(CredentialRow.breach_info).where(CredentialRow.id == record_id)
            )

    def apply_breach_state(self, identity: str, blob: str) -> int:
        key = normalize_identity(identity)
        with self._transaction(f"update breach state for {key}") as session:
            result = session.execute(
                update(CredentialRow)
                .where(CredentialRow.identity_key == key)
                .values(breach_info=blob)
            )
            return result.rowcount or 0

    def count_identities(self, status: IdentityStatus = IdentityStatus.ANY) -> int:
        query = select(func.count(func.distinct(CredentialRow.identity_key))).where(self._eligible())
        if status == IdentityStatus.CHECKED:
            query = query.where(CredentialRow.breach_info.is_not(None), CredentialRow.breach_info != "")
        elif status == IdentityStatus.BREACHED:
            query = query.where(CredentialRow.breach_info.like(BREACHED_MARKER))
        elif status == IdentityStatus.SAFE:
            query = query.where(CredentialRow.breach_info.like(SAFE_MARKER))
        with self._sessions() as session:
            return session.scalar(query) or 0

    def count_entries(self, checked_only: bool = False) -> int:
        query = select(func.count(CredentialRow.id)).where(self._eligible())
        if checked_only:
            query = query.where(CredentialRow.breach_info.is_not(None), CredentialRow.breach_info != "")
        with self._sessions() as session:
            return session.scalar(query) or 0

    def unchecked_identities(self) -> set[str]:
        checked = (
            select(CredentialRow.identity_key)
            .where(CredentialRow.breach_info.is_not(None), CredentialRow.breach_info != "")
        )
        query = (
            select(CredentialRow.identity_key)
            .where(self._eligible(), CredentialRow.identity_key.not_in(checked))
            .distinct()
        )
        with self._sessions() as session:
            return set(session.scalars(query).all())

    def save_risk_assessments(self, assessments: dict[int, RiskAssessment]) -> None:
        with self._transaction("save risk scores") as session:
            for record_id, assessment in assessments.items():
                session.execute(
                    update(CredentialRow)
                    .where(CredentialRow.id == record_id)
                    .values(
                        risk_score=assessment.score,
                        risk_label=assessment.label.value,
                        risk_factors=json.dumps(assessment.factors),
                    )
                )

    def set_compromised(self, record_id: int, compromised: bool, checked_at: datetime) -> None:
        with self._transaction(f"update record {record_id}") as session:
            session.execute(
                update(CredentialRow)
                .where(CredentialRow.id == record_id)
                .values(compromised=compromised, last_checked_at=checked_at)
            )
