"""Stored results of the revenue split: per-draw payouts and audit snapshots."""

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
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE
from ..db.utils import dt_iso, money_str

if TYPE_CHECKING:
    from .contest import Contest
    from .draw import Draw
    from .participation import Participation


class DrawPayout(Base):
    """Category and amount of one participation for one draw.

    Rows are replaced as a whole for a draw on every reprocessing pass,
    so there is never more than one row per ``(draw_id, participation_id)``.
    """

    __tablename__ = "draw_payouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    draw_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("draws.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    participation_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("participations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category: Mapped[str] = mapped_column(String(10), nullable=False)
    """``TOP``, ``SECOND``, ``LOWEST`` or ``NONE``."""

    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_won: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    draw: Mapped["Draw"] = relationship(back_populates="payouts")
    participation: Mapped["Participation"] = relationship(back_populates="payouts")

    __table_args__ = (
        UniqueConstraint(
            "draw_id", "participation_id", name="draw_payouts_draw_participation_key"
        ),
        CheckConstraint(
            "category IN ('TOP','SECOND','LOWEST','NONE')", name="category_enum"
        ),
        CheckConstraint("amount_won >= 0", name="amount_won_non_negative"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<DrawPayout(draw_id={draw}, participation_id={part}, category={cat}, amount={amount})>".format(
            draw=self.draw_id,
            part=self.participation_id,
            cat=self.category,
            amount=self.amount_won,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "draw_id": self.draw_id,
            "participation_id": self.participation_id,
            "category": self.category,
            "score": self.score,
            "amount_won": money_str(self.amount_won),
            "processed_at": dt_iso(self.processed_at),
        }


class RateioSnapshot(Base):
    """Audit record of the revenue split written once per reprocessing pass."""

    __tablename__ = "rateio_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contest_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("contests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    draw_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("draws.id", ondelete="SET NULL"), nullable=True
    )
    """Draw whose evaluation the snapshot describes."""

    total_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    admin_fee_amount: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    prize_pool_amount: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    """Fee and pool keep the unrounded value; only per-winner amounts are truncated."""

    first_place_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    second_place_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    lowest_place_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    admin_fee_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    distribution: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    """Per-category amounts of the winning categories that had winners."""

    winners: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    """Every winning participation with its category and amount."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    contest: Mapped["Contest"] = relationship(back_populates="rateio_snapshots")

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "contest_id": self.contest_id,
            "draw_id": self.draw_id,
            "total_revenue": money_str(self.total_revenue),
            "admin_fee_amount": str(self.admin_fee_amount),
            "prize_pool_amount": str(self.prize_pool_amount),
            "first_place_pct": str(self.first_place_pct),
            "second_place_pct": str(self.second_place_pct),
            "lowest_place_pct": str(self.lowest_place_pct),
            "admin_fee_pct": str(self.admin_fee_pct),
            "distribution": self.distribution,
            "winners": self.winners,
            "created_at": dt_iso(self.created_at),
        }


__all__ = ["DrawPayout", "RateioSnapshot"]
