"""
Fact and subscriber storage: a SQLAlchemy client and an in-memory test implementation.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

from sqlalchemy import Column, Integer, String, create_engine, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from duckfacts.errors import StorageError


def _now_seconds() -> int:
    return int(time.time())


class DbClient(Protocol):
    """Interface for fact and subscriber storage."""

    def list_facts(self, cutoff: float | None = None) -> list["FactRecord"]:
        ...

    def find_fact(self, en: str) -> Optional["FactRecord"]:
        ...

    def insert_fact(
        self, en: str, fr: str | None = None, created: int | None = None
    ) -> "FactRecord":
        ...

    def list_subscribers(self) -> list["SubscriberRecord"]:
        ...

    def add_subscriber(self, number: str) -> "SubscriberRecord":
        ...

    def remove_subscriber(self, number: str) -> int:
        ...

    def close(self) -> None:
        ...


@dataclass
class FactRecord:
    id: int
    en: str
    fr: str = ""
    created: int = field(default_factory=_now_seconds)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "en": self.en,
            "fr": self.fr,
            "created": self.created,
        }


@dataclass
class SubscriberRecord:
    id: int
    number: str

    def as_dict(self) -> dict:
        return {"id": self.id, "number": self.number}


class InMemoryDbClient:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.facts: list[FactRecord] = []
        self.subscribers: list[SubscriberRecord] = []
        self._next_fact_id = 1
        self._next_subscriber_id = 1
        # Requests run on the threadpool; ids and lists change under this lock.
        self._lock = threading.Lock()

    def list_facts(self, cutoff: float | None = None) -> list[FactRecord]:
        with self._lock:
            facts = list(self.facts)
        if cutoff is not None:
            floor = math.floor(cutoff)
            facts = [fact for fact in facts if fact.created >= floor]
        return sorted(facts, key=lambda fact: (fact.created, fact.id), reverse=True)

    def find_fact(self, en: str) -> Optional[FactRecord]:
        needle = en.lower()
        with self._lock:
            facts = list(self.facts)
        for fact in facts:
            if fact.en.lower() == needle:
                return fact
        return None

    def insert_fact(
        self, en: str, fr: str | None = None, created: int | None = None
    ) -> FactRecord:
        with self._lock:
            record = FactRecord(
                id=self._next_fact_id,
                en=en,
                fr=fr if fr is not None else "",
                created=created if created is not None else _now_seconds(),
            )
            self._next_fact_id += 1
            self.facts.append(record)
        return record

    def list_subscribers(self) -> list[SubscriberRecord]:
        with self._lock:
            subscribers = list(self.subscribers)
        return sorted(subscribers, key=lambda subscriber: subscriber.id)

    def add_subscriber(self, number: str) -> SubscriberRecord:
        with self._lock:
            record = SubscriberRecord(id=self._next_subscriber_id, number=number)
            self._next_subscriber_id += 1
            self.subscribers.append(record)
        return record

    def remove_subscriber(self, number: str) -> int:
        needle = number.lower()
        with self._lock:
            kept = [s for s in self.subscribers if s.number.lower() != needle]
            removed = len(self.subscribers) - len(kept)
            self.subscribers = kept
        return removed

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.facts.clear()
            self.subscribers.clear()
            self._next_fact_id = 1
            self._next_subscriber_id = 1

    def close(self) -> None:
        pass


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (SQLite by default, Postgres works too).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        engine_kwargs: dict = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection, otherwise every thread sees an empty database.
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        try:
            self.engine = create_engine(database_url, **engine_kwargs)
            self.Session = sessionmaker(
                bind=self.engine, class_=Session, expire_on_commit=False, future=True
            )
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to open store: {exc}") from exc

    def _to_fact_record(self, row: "FactRow") -> FactRecord:
        return FactRecord(
            id=row.id,
            en=row.en,
            fr=row.fr or "",
            created=row.created,
        )

    def _to_subscriber_record(self, row: "SubscriberRow") -> SubscriberRecord:
        return SubscriberRecord(id=row.id, number=row.number)

    def list_facts(self, cutoff: float | None = None) -> list[FactRecord]:
        stmt = select(FactRow).order_by(FactRow.created.desc(), FactRow.id.desc())
        if cutoff is not None:
            stmt = stmt.where(FactRow.created >= math.floor(cutoff))
        try:
            with self.Session() as session:
                rows = session.execute(stmt).scalars().all()
                return [self._to_fact_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to list facts: {exc}") from exc

    def find_fact(self, en: str) -> Optional[FactRecord]:
        stmt = (
            select(FactRow)
            .where(func.lower(FactRow.en) == func.lower(en))
            .limit(1)
        )
        try:
            with self.Session() as session:
                row = session.execute(stmt).scalar_one_or_none()
                if not row:
                    return None
                return self._to_fact_record(row)
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to find fact: {exc}") from exc

    def insert_fact(
        self, en: str, fr: str | None = None, created: int | None = None
    ) -> FactRecord:
        try:
            with self.Session() as session:
                row = FactRow(
                    en=en,
                    fr=fr if fr is not None else "",
                    created=created if created is not None else _now_seconds(),
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                return self._to_fact_record(row)
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to insert fact: {exc}") from exc

    def list_subscribers(self) -> list[SubscriberRecord]:
        try:
            with self.Session() as session:
                rows = (
                    session.execute(select(SubscriberRow).order_by(SubscriberRow.id.asc()))
                    .scalars()
                    .all()
                )
                return [self._to_subscriber_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to list subscribers: {exc}") from exc

    def add_subscriber(self, number: str) -> SubscriberRecord:
        try:
            with self.Session() as session:
                row = SubscriberRow(number=number)
                session.add(row)
                session.commit()
                session.refresh(row)
                return self._to_subscriber_record(row)
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to add subscriber: {exc}") from exc

    def remove_subscriber(self, number: str) -> int:
        stmt = delete(SubscriberRow).where(
            func.lower(SubscriberRow.number) == func.lower(number)
        )
        try:
            with self.Session() as session:
                result = session.execute(stmt)
                session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to remove subscriber: {exc}") from exc

    def close(self) -> None:
        self.engine.dispose()


Base = declarative_base()


class FactRow(Base):
    __tablename__ = "facts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    en = Column(String, nullable=False)
    fr = Column(String, nullable=True, default="")
    created = Column(Integer, nullable=False, index=True)


class SubscriberRow(Base):
    __tablename__ = "subscribers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    number = Column(String, nullable=False)
