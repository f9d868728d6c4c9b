"""
Hookups — Hookup round and photo entry models.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

GENDERS: tuple[str, ...] = ("male", "female")

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUSES: tuple[str, ...] = (STATUS_ACTIVE, STATUS_INACTIVE)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Hookup(Base):
    __tablename__ = "hookups"
    __table_args__ = (
        Index("ix_hookups_gender_status", "gender", "status"),
        # At most one active round per gender.
        Index(
            "uq_hookups_active_gender",
            "gender",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    gender: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=STATUS_ACTIVE, comment="active/inactive"
    )
    winner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, nullable=True, comment="User id of the winning entry"
    )
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="When the winner was set"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    entries: Mapped[list["HookupEntry"]] = relationship(
        "HookupEntry",
        back_populates="hookup",
        cascade="all, delete-orphan",
        order_by="HookupEntry.created_at",
        lazy="selectin",
    )

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def entry_for(self, user_id: uuid.UUID) -> "HookupEntry | None":
        for entry in self.entries:
            if entry.user_id == user_id:
                return entry
        return None

    def __repr__(self) -> str:
        return f"<Hookup {self.gender!r} status={self.status!r} id={self.id}>"


class HookupEntry(Base):
    __tablename__ = "hookup_entries"
    __table_args__ = (
        UniqueConstraint("hookup_id", "user_id", name="uq_hookup_entry_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    hookup_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("hookups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    image: Mapped[str] = mapped_column(
        String, nullable=False, comment="Stored filename under the upload dir"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    hookup: Mapped["Hookup"] = relationship("Hookup", back_populates="entries")

    def __repr__(self) -> str:
        return f"<HookupEntry hookup={self.hookup_id} user={self.user_id} image={self.image!r}>"
