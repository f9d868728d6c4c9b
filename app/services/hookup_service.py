"""
Hookups — HookupService: Round Lifecycle, Photo Entries and Winners

A hookup round is a per-gender photo contest:

  1. **Open**: an admin creates a round for a gender.  Opening a round
     closes any other active round of the same gender, so there is at most
     one active round per gender.
  2. **Submit**: users add one photo each to the active round.  A second
     submission from the same user replaces the first image.
  3. **Decide**: an admin picks a winner among the users who submitted.
  4. **Close / reopen**: an admin flips the round's status.

Every public method accepts an optional ``db_session``.  When ``None`` is
passed, the method opens (and commits/closes) its own session via
``async_session_factory``.  When an existing session is provided, the caller
is responsible for commit/rollback.  Results are JSON-ready dicts; failures
are raised as ``HttpException`` with the status code to render.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, TypeVar

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import async_session_factory
from app.models.hookup import (
    GENDERS,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    STATUSES,
    Hookup,
    HookupEntry,
)
from app.utils.exceptions import HttpException

logger = structlog.get_logger("hookups.hookup_service")

T = TypeVar("T")

# ── Constants ────────────────────────────────────────────────────────────────

DEFAULT_PAGE_SIZE: int = 100

MAX_PAGE_SIZE: int = 100

MAX_PAGE: int = 2**31 - 1

FILTERABLE_FIELDS: tuple[str, ...] = ("gender", "status", "winner_id")

SORTABLE_FIELDS: dict[str, Any] = {
    "created_at": Hookup.created_at,
    "updated_at": Hookup.updated_at,
    "decided_at": Hookup.decided_at,
    "gender": Hookup.gender,
    "status": Hookup.status,
}


class HookupService:
    """Reads and mutates hookup rounds and their photo entries."""

    # ══════════════════════════════════════════════════════════════════════
    # 1. create: open a new round for a gender
    # ══════════════════════════════════════════════════════════════════════

    async def create(
        self,
        gender: str,
        db_session: AsyncSession | None = None,
    ) -> dict:
        """Open a new active round for ``gender``.

        Any round of the same gender that is still active is closed first.
        """
        if gender not in GENDERS:
            raise HttpException(f"Invalid gender: {gender}", 400)

        log = logger.bind(gender=gender)
        log.info("create_start")

        async def _work(session: AsyncSession) -> dict:
            closed = await self._deactivate_gender(session, gender)
            hookup = Hookup(
                gender=gender,
                status=STATUS_ACTIVE,
                winner_id=None,
                decided_at=None,
                entries=[],
            )
            session.add(hookup)
            await self._flush_active(session, gender, log)
            log.info("create_complete", hookup_id=str(hookup.id), closed_rounds=closed)
            return self._hookup_to_dict(hookup)

        return await self._in_session(db_session, _work)

    # ══════════════════════════════════════════════════════════════════════
    # 2. get_active: the open round for a gender
    # ══════════════════════════════════════════════════════════════════════

    async def get_active(
        self,
        gender: str,
        db_session: AsyncSession | None = None,
    ) -> dict:
        """Return the active round of ``gender`` with its entries.

        Raises
        ------
        HttpException
            404 when the gender has no active round.
        """
        logger.info("get_active", gender=gender)

        stmt = (
            select(Hookup)
            .where(Hookup.gender == gender, Hookup.status == STATUS_ACTIVE)
            .order_by(Hookup.created_at.desc())
            .limit(1)
        )

        async def _work(session: AsyncSession) -> dict:
            result = await session.execute(stmt)
            hookup = result.scalar_one_or_none()
            if hookup is None:
                raise HttpException(
                    f"No active hookup found for gender '{gender}'", 404
                )
            return self._hookup_to_dict(hookup)

        return await self._in_session(db_session, _work)

    # ══════════════════════════════════════════════════════════════════════
    # 3. get_all: list rounds filtered by query parameters
    # ══════════════════════════════════════════════════════════════════════

    async def get_all(
        self,
        query: Mapping[str, str] | None = None,
        db_session: AsyncSession | None = None,
    ) -> list[dict]:
        """List rounds, newest first unless ``sort`` says otherwise.

        Parameters
        ----------
        query:
            Raw query parameters.  ``gender``, ``status`` and ``winner_id``
            filter by equality; ``sort`` is a comma-separated field list with
            an optional ``-`` prefix for descending order; ``page`` and
            ``limit`` paginate.  Any other key is ignored.
        db_session:
            An active async SQLAlchemy session, or ``None`` to auto-manage.
        """
        query = dict(query or {})
        log = logger.bind(query=query)
        log.info("get_all_start")

        stmt = select(Hookup)

        for field in FILTERABLE_FIELDS:
            value = query.get(field)
            if value is None or value == "":
                continue
            if field == "winner_id":
                stmt = stmt.where(Hookup.winner_id == self._parse_uuid(value, "winner id"))
            else:
                stmt = stmt.where(getattr(Hookup, field) == value)

        stmt = stmt.order_by(*self._parse_sort(query.get("sort")))

        page = self._parse_positive_int(
            query.get("page"), "page", default=1, maximum=MAX_PAGE
        )
        limit = self._parse_positive_int(
            query.get("limit"), "limit", default=DEFAULT_PAGE_SIZE
        )
        limit = min(limit, MAX_PAGE_SIZE)
        stmt = stmt.offset((page - 1) * limit).limit(limit)

        async def _work(session: AsyncSession) -> list[dict]:
            result = await session.execute(stmt)
            return [self._hookup_to_dict(row) for row in result.scalars().all()]

        hookups = await self._in_session(db_session, _work)
        log.info("get_all_complete", count=len(hookups))
        return hookups

    # ══════════════════════════════════════════════════════════════════════
    # 4. get_last_winners: latest decided round per gender
    # ══════════════════════════════════════════════════════════════════════

    async def get_last_winners(
        self,
        db_session: AsyncSession | None = None,
    ) -> list[dict]:
        """Return the most recent winner of every gender, newest first."""
        logger.info("get_last_winners")

        async def _work(session: AsyncSession) -> list[dict]:
            winners: list[dict] = []
            for gender in GENDERS:
                rows = await self._winner_rows(session, gender, limit=1)
                winners.extend(self._winner_to_dict(h, e) for h, e in rows)
            return winners

        winners = await self._in_session(db_session, _work)
        winners.sort(key=lambda w: w["decided_at"] or "", reverse=True)
        return winners

    # ══════════════════════════════════════════════════════════════════════
    # 5. get_all_winners: every decided round of a gender
    # ══════════════════════════════════════════════════════════════════════

    async def get_all_winners(
        self,
        gender: str,
        db_session: AsyncSession | None = None,
    ) -> list[dict]:
        """Return every winner of ``gender``, most recently decided first."""
        logger.info("get_all_winners", gender=gender)

        async def _work(session: AsyncSession) -> list[dict]:
            rows = await self._winner_rows(session, gender)
            return [self._winner_to_dict(h, e) for h, e in rows]

        return await self._in_session(db_session, _work)

    # ══════════════════════════════════════════════════════════════════════
    # 6. add: record a user's photo submission
    # ══════════════════════════════════════════════════════════════════════

    async def add(
        self,
        hookup_id: str | uuid.UUID,
        user_id: str | uuid.UUID,
        image: str | None,
        db_session: AsyncSession | None = None,
    ) -> dict:
        """Attach ``image`` as ``user_id``'s entry in round ``hookup_id``.

        A user has at most one entry per round; submitting again replaces
        the stored image name.

        Raises
        ------
        HttpException
            400 without an image or when the round is closed, 404 when the
            round does not exist.
        """
        if not image:
            raise HttpException("Please upload an image", 400)

        hookup_uuid = self._parse_uuid(hookup_id, "hookup id")
        user_uuid = self._parse_uuid(user_id, "user id")
        log = logger.bind(hookup_id=str(hookup_uuid), user_id=str(user_uuid))
        log.info("add_start", image=image)

        async def _work(session: AsyncSession) -> dict:
            hookup = await self._get_or_404(session, hookup_uuid)
            if not hookup.is_active:
                raise HttpException("This hookup is no longer active", 400)

            entry = hookup.entry_for(user_uuid)
            if entry is not None:
                entry.image = image
                log.info("entry_replaced", entry_id=str(entry.id))
            else:
                hookup.entries.append(HookupEntry(user_id=user_uuid, image=image))
                log.info("entry_created")

            await session.flush()
            return self._hookup_to_dict(hookup)

        return await self._in_session(db_session, _work)

    # ══════════════════════════════════════════════════════════════════════
    # 7. set_winner: pick the winning user of a round
    # ══════════════════════════════════════════════════════════════════════

    async def set_winner(
        self,
        hookup_id: str | uuid.UUID,
        user_id: str | uuid.UUID,
        db_session: AsyncSession | None = None,
    ) -> dict:
        """Mark ``user_id`` as the winner of round ``hookup_id``.

        The winner must have an entry in the round.
        """
        hookup_uuid = self._parse_uuid(hookup_id, "hookup id")
        user_uuid = self._parse_uuid(user_id, "user id")
        log = logger.bind(hookup_id=str(hookup_uuid), user_id=str(user_uuid))
        log.info("set_winner_start")

        async def _work(session: AsyncSession) -> dict:
            hookup = await self._get_or_404(session, hookup_uuid)
            if hookup.entry_for(user_uuid) is None:
                raise HttpException(
                    "User has not submitted a photo to this hookup", 400
                )

            hookup.winner_id = user_uuid
            hookup.decided_at = datetime.now(timezone.utc)
            await session.flush()
            log.info("set_winner_complete")
            return self._hookup_to_dict(hookup)

        return await self._in_session(db_session, _work)

    # ══════════════════════════════════════════════════════════════════════
    # 8. update_status_hookup: open or close a round
    # ══════════════════════════════════════════════════════════════════════

    async def update_status_hookup(
        self,
        hookup_id: str | uuid.UUID,
        status: str,
        db_session: AsyncSession | None = None,
    ) -> dict:
        """Set a round's status.  Activating it closes the other active
        round of the same gender, if any."""
        if status not in STATUSES:
            raise HttpException(f"Invalid status: {status}", 400)

        hookup_uuid = self._parse_uuid(hookup_id, "hookup id")
        log = logger.bind(hookup_id=str(hookup_uuid), status=status)
        log.info("update_status_start")

        async def _work(session: AsyncSession) -> dict:
            hookup = await self._get_or_404(session, hookup_uuid)
            if status == STATUS_ACTIVE and not hookup.is_active:
                await self._deactivate_gender(session, hookup.gender)

            hookup.status = status
            if status == STATUS_ACTIVE:
                await self._flush_active(session, hookup.gender, log)
            else:
                await session.flush()
            log.info("update_status_complete")
            return self._hookup_to_dict(hookup)

        return await self._in_session(db_session, _work)

    # ══════════════════════════════════════════════════════════════════════
    # Helpers
    # ══════════════════════════════════════════════════════════════════════

    @staticmethod
    async def _in_session(
        db_session: AsyncSession | None,
        work: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        if db_session is not None:
            return await work(db_session)
        async with async_session_factory() as session:
            result = await work(session)
            await session.commit()
            return result

    @staticmethod
    async def _get_or_404(session: AsyncSession, hookup_id: uuid.UUID) -> Hookup:
        result = await session.execute(select(Hookup).where(Hookup.id == hookup_id))
        hookup = result.scalar_one_or_none()
        if hookup is None:
            raise HttpException(f"No hookup found with id {hookup_id}", 404)
        return hookup

    @staticmethod
    async def _deactivate_gender(session: AsyncSession, gender: str) -> int:
        """Close every active round of ``gender``; return how many.

        The active rows are locked first so concurrent openers of the same
        gender queue behind each other.
        """
        locked = await session.execute(
            select(Hookup.id)
            .where(Hookup.gender == gender, Hookup.status == STATUS_ACTIVE)
            .with_for_update()
        )
        ids = list(locked.scalars().all())
        if not ids:
            return 0

        await session.execute(
            update(Hookup)
            .where(Hookup.id.in_(ids))
            .values(status=STATUS_INACTIVE, updated_at=datetime.now(timezone.utc))
        )
        return len(ids)

    @staticmethod
    async def _flush_active(session: AsyncSession, gender: str, log: Any) -> None:
        """Flush a round that is becoming active.

        ``uq_hookups_active_gender`` rejects the write when another
        transaction activated a round of the same gender in the meantime.
        """
        try:
            await session.flush()
        except IntegrityError as error:
            log.warning("active_round_conflict", gender=gender)
            raise HttpException(
                f"Another {gender} hookup is already active, please retry", 409
            ) from error

    @staticmethod
    async def _winner_rows(
        session: AsyncSession,
        gender: str,
        limit: int | None = None,
    ) -> list[tuple[Hookup, HookupEntry]]:
        stmt = (
            select(Hookup, HookupEntry)
            .join(
                HookupEntry,
                (HookupEntry.hookup_id == Hookup.id)
                & (HookupEntry.user_id == Hookup.winner_id),
            )
            .where(Hookup.gender == gender, Hookup.winner_id.is_not(None))
            .order_by(Hookup.decided_at.desc(), Hookup.created_at.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    @staticmethod
    def _parse_uuid(value: str | uuid.UUID, label: str) -> uuid.UUID:
        if isinstance(value, uuid.UUID):
            return value
        try:
            return uuid.UUID(str(value))
        except ValueError:
            raise HttpException(f"Invalid {label}: {value}", 400) from None

    @staticmethod
    def _parse_positive_int(
        value: str | None,
        label: str,
        default: int,
        maximum: int | None = None,
    ) -> int:
        if value is None or value == "":
            return default
        try:
            parsed = int(value)
        except ValueError:
            raise HttpException(f"Invalid {label}: {value}", 400) from None
        if parsed < 1 or (maximum is not None and parsed > maximum):
            raise HttpException(f"Invalid {label}: {value}", 400)
        return parsed

    @staticmethod
    def _parse_sort(value: str | None) -> list[Any]:
        if not value:
            return [Hookup.created_at.desc()]

        clauses = []
        for raw in value.split(","):
            name = raw.strip()
            descending = name.startswith("-")
            name = name.lstrip("-")
            column = SORTABLE_FIELDS.get(name)
            if column is None:
                raise HttpException(f"Cannot sort by '{raw.strip()}'", 400)
            clauses.append(column.desc() if descending else column.asc())
        return clauses

    @staticmethod
    def _hookup_to_dict(hookup: Hookup) -> dict:
        """Serialise a Hookup ORM instance (with entries) to a plain dict."""
        return {
            "id": str(hookup.id),
            "gender": hookup.gender,
            "status": hookup.status,
            "winner_id": str(hookup.winner_id) if hookup.winner_id else None,
            "decided_at": (
                hookup.decided_at.isoformat() if hookup.decided_at else None
            ),
            "entries": [
                {
                    "id": str(entry.id),
                    "user_id": str(entry.user_id),
                    "image": entry.image,
                    "created_at": (
                        entry.created_at.isoformat() if entry.created_at else None
                    ),
                }
                for entry in hookup.entries
            ],
            "created_at": (
                hookup.created_at.isoformat() if hookup.created_at else None
            ),
            "updated_at": (
                hookup.updated_at.isoformat() if hookup.updated_at else None
            ),
        }

    @staticmethod
    def _winner_to_dict(hookup: Hookup, entry: HookupEntry) -> dict:
        return {
            "hookup_id": str(hookup.id),
            "gender": hookup.gender,
            "user_id": str(entry.user_id),
            "image": entry.image,
            "decided_at": (
                hookup.decided_at.isoformat() if hookup.decided_at else None
            ),
        }
