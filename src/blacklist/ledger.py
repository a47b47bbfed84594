from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.base.models import utcnow
from src.blacklist.models import BlacklistEntry

logger = logging.getLogger(__name__)

BLACKLIST_TTL = timedelta(hours=24)


@dataclass(frozen=True)
class BlacklistRecord:
    request_id: UUID
    employee_name: str
    user_id: str
    created_at: datetime


class BlacklistLedger(ABC):
    """Durable "employee X was rejected for request Y" facts."""

    @abstractmethod
    async def add(self, request_id: UUID, employee_name: str, user_id: str) -> None:
        """Record a rejection. Adding the same triple twice is harmless."""

    @abstractmethod
    async def get(self, request_id: UUID) -> set[str]:
        """Names of every employee blacklisted for the request."""

    @abstractmethod
    async def clear(self, request_id: UUID) -> int:
        """Drop all entries of a request. Returns the number removed."""

    @abstractmethod
    async def cleanup_expired(self, max_age: timedelta = BLACKLIST_TTL) -> int:
        """Drop entries older than `max_age`, whatever their request's state."""

    @abstractmethod
    async def entries_for_user(self, user_id: str) -> list[BlacklistRecord]:
        """All entries created by a user, newest first."""


class InMemoryBlacklistLedger(BlacklistLedger):
    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._entries: dict[tuple[UUID, str, str], datetime] = {}

    async def add(self, request_id: UUID, employee_name: str, user_id: str) -> None:
        self._entries.setdefault((request_id, employee_name, user_id), self._clock())

    async def get(self, request_id: UUID) -> set[str]:
        return {name for (rid, name, _), _ts in self._entries.items() if rid == request_id}

    async def clear(self, request_id: UUID) -> int:
        keys = [key for key in self._entries if key[0] == request_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    async def cleanup_expired(self, max_age: timedelta = BLACKLIST_TTL) -> int:
        cutoff = self._clock() - max_age
        expired = [key for key, created in self._entries.items() if created < cutoff]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def entries_for_user(self, user_id: str) -> list[BlacklistRecord]:
        records = [
            BlacklistRecord(
                request_id=rid, employee_name=name, user_id=uid, created_at=created
            )
            for (rid, name, uid), created in self._entries.items()
            if uid == user_id
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)


class SqlBlacklistLedger(BlacklistLedger):
    """Ledger backed by `simulated_employees_blacklist`.

    Each call uses its own short-lived session, so a concurrent decline and
    cancel on the same request never observe a half-written set.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, request_id: UUID, employee_name: str, user_id: str) -> None:
        async with self._session_factory() as session:
            existing_stmt = select(BlacklistEntry.id).where(
                BlacklistEntry.request_id == request_id,
                BlacklistEntry.employee_name == employee_name,
                BlacklistEntry.user_id == user_id,
            )
            if (await session.execute(existing_stmt)).first() is not None:
                return

            session.add(
                BlacklistEntry(
                    request_id=request_id,
                    employee_name=employee_name,
                    user_id=user_id,
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                # Lost a race against an identical insert.
                await session.rollback()
                return

        logger.info("Blacklisted %s for request %s", employee_name, request_id)

    async def get(self, request_id: UUID) -> set[str]:
        async with self._session_factory() as session:
            stmt = select(BlacklistEntry.employee_name).where(
                BlacklistEntry.request_id == request_id
            )
            return set((await session.execute(stmt)).scalars().all())

    async def clear(self, request_id: UUID) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(BlacklistEntry).where(BlacklistEntry.request_id == request_id)
            )
            await session.commit()

        removed: int = result.rowcount  # type: ignore[attr-defined]
        logger.info("Cleared %d blacklist entries for request %s", removed, request_id)
        return removed

    async def cleanup_expired(self, max_age: timedelta = BLACKLIST_TTL) -> int:
        cutoff = utcnow() - max_age
        async with self._session_factory() as session:
            result = await session.execute(
                delete(BlacklistEntry).where(BlacklistEntry.created_at < cutoff)
            )
            await session.commit()
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def entries_for_user(self, user_id: str) -> list[BlacklistRecord]:
        async with self._session_factory() as session:
            stmt = (
                select(BlacklistEntry)
                .where(BlacklistEntry.user_id == user_id)
                .order_by(BlacklistEntry.created_at.desc())
            )
            entries = (await session.execute(stmt)).scalars().all()

        return [
            BlacklistRecord(
                request_id=e.request_id,
                employee_name=e.employee_name,
                user_id=e.user_id,
                created_at=e.created_at,
            )
            for e in entries
        ]
