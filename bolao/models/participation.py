"""Participations (purchased entries) and their payments."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from bolao.scoring.scoring import ParticipationInput, as_utc

from .base import Base
from .id_type import ID_TYPE
from ..db.utils import dt_iso, money_str

if TYPE_CHECKING:
    from .contest import Contest
    from .payout import DrawPayout
    from .user import User


class Participation(Base):
    """One entry of a user in a contest, holding the chosen numbers."""

    __tablename__ = "participations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    contest_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("contests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    numbers: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    """Chosen numbers, sorted ascending. Never changed after creation."""

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    """``pending`` until paid, then ``active``; only active entries are scored."""

    current_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Best single-draw hit count as of the last reprocessing pass."""

    ticket_code: Mapped[Optional[str]] = mapped_column(
        String(20), unique=True, nullable=True
    )
    """Ticket code in ``TK-XXXXXX`` format."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Creation time; draws before it never count for this entry."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    contest: Mapped["Contest"] = relationship(back_populates="participations")
    user: Mapped["User"] = relationship(back_populates="participations")
    payments: Mapped[list["Payment"]] = relationship(
        back_populates="participation",
        cascade="all, delete-orphan",
    )
    payouts: Mapped[list["DrawPayout"]] = relationship(
        back_populates="participation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','active','cancelled')", name="status_enum"
        ),
    )

    def __init__(
        self,
        *,
        numbers: list[int],
        contest: Optional["Contest"] = None,
        contest_id: Optional[int] = None,
        user: Optional["User"] = None,
        user_id: Optional[int] = None,
        status: str = "pending",
        current_score: int = 0,
        ticket_code: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.numbers = sorted(numbers)
        if contest is not None:
            self.contest = contest
        if contest_id is not None:
            self.contest_id = contest_id
        if user is not None:
            self.user = user
        if user_id is not None:
            self.user_id = user_id
        self.status = status
        self.current_score = current_score
        self.ticket_code = ticket_code
        if created_at is not None:
            self.created_at = as_utc(created_at)

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Participation(id={id}, contest_id={contest}, ticket_code={code}, score={score})>".format(
            id=self.id,
            contest=self.contest_id,
            code=self.ticket_code,
            score=self.current_score,
        )

    def to_input(self) -> ParticipationInput:
        """Return the value object consumed by the scoring core."""
        return ParticipationInput(
            id=self.id,
            user_id=self.user_id,
            numbers=tuple(self.numbers),
            created_at=self.created_at,
            ticket_code=self.ticket_code,
            status=self.status,
        )

    @classmethod
    def get_by_ticket_code(
        cls, session: Session, ticket_code: str
    ) -> Optional["Participation"]:
        return session.scalar(select(cls).where(cls.ticket_code == ticket_code))

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "contest_id": self.contest_id,
            "user_id": self.user_id,
            "numbers": list(self.numbers),
            "status": self.status,
            "current_score": self.current_score,
            "ticket_code": self.ticket_code,
            "created_at": dt_iso(self.created_at),
        }


class Payment(Base):
    """Payment attached to a participation; paid ones make up the revenue."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    participation_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("participations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    external_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    participation: Mapped["Participation"] = relationship(back_populates="payments")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','paid','cancelled','refunded')", name="status_enum"
        ),
        CheckConstraint("amount >= 0", name="amount_non_negative"),
    )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "participation_id": self.participation_id,
            "amount": money_str(self.amount),
            "status": self.status,
            "payment_method": self.payment_method,
            "paid_at": dt_iso(self.paid_at),
        }


__all__ = ["Participation", "Payment"]
