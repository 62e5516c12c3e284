"""Contest (bolão) configuration."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from bolao.scoring.engine import ContestRules
from bolao.scoring.payouts import PercentConfig
from bolao.scoring.scoring import as_utc
from bolao.scoring.validation import NumberRules

from .base import Base
from .id_type import ID_TYPE
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .draw import Draw
    from .participation import Participation
    from .payout import RateioSnapshot


CONTEST_STATUSES = ("draft", "active", "finished", "cancelled")


class Contest(Base):
    """A number pool contest and its prize split configuration."""

    __tablename__ = "contests"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Display name."""

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    contest_code: Mapped[Optional[str]] = mapped_column(
        String(50), unique=True, nullable=True
    )
    """Public code shown to participants, e.g. ``CG-20250124-A1B2C3``."""

    min_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_number: Mapped[int] = mapped_column(Integer, nullable=False)
    numbers_per_participation: Mapped[int] = mapped_column(Integer, nullable=False)
    """How many numbers each participation picks."""

    participation_value: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    """Ticket price; informational, revenue is taken from paid payments."""

    first_place_pct: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    second_place_pct: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    lowest_place_pct: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    admin_fee_pct: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    """Percentages; NULL falls back to the configured default for that field."""

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")

    start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    participations: Mapped[list["Participation"]] = relationship(
        back_populates="contest",
        cascade="all, delete-orphan",
    )
    draws: Mapped[list["Draw"]] = relationship(
        back_populates="contest",
        cascade="all, delete-orphan",
    )
    rateio_snapshots: Mapped[list["RateioSnapshot"]] = relationship(
        back_populates="contest",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft','active','finished','cancelled')",
            name="status_enum",
        ),
        CheckConstraint("min_number >= 1", name="min_number_positive"),
        CheckConstraint("max_number >= min_number", name="range_not_empty"),
        CheckConstraint(
            "numbers_per_participation >= 1", name="numbers_per_participation_positive"
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Contest(id={id}, name={name!r}, status={status})>".format(
            id=self.id, name=self.name, status=self.status
        )

    def percent_config(self, defaults: Optional[PercentConfig] = None) -> PercentConfig:
        """Return the validated percentage split of this contest.

        Each NULL column takes the matching value from ``defaults``
        (the 65/10/7/18 split when omitted). An explicit ``0`` is kept.

        Raises
        ------
        ConfigurationError
            If the resulting percentages do not sum to 100.
        """

        fallback = defaults or PercentConfig()

        def pick(value: Optional[Decimal], default: Decimal) -> Decimal:
            return default if value is None else value

        return PercentConfig(
            top_pct=pick(self.first_place_pct, fallback.top_pct),
            second_pct=pick(self.second_place_pct, fallback.second_pct),
            lowest_pct=pick(self.lowest_place_pct, fallback.lowest_pct),
            admin_fee_pct=pick(self.admin_fee_pct, fallback.admin_fee_pct),
        )

    def number_rules(self) -> NumberRules:
        return NumberRules(
            min_number=self.min_number,
            max_number=self.max_number,
            numbers_per_participation=self.numbers_per_participation,
        )

    def rules(self, defaults: Optional[PercentConfig] = None) -> ContestRules:
        """Return the typed rules consumed by the scoring engine."""
        return ContestRules(
            numbers=self.number_rules(),
            percent_config=self.percent_config(defaults),
        )

    def latest_draw(self, session: Session) -> Optional["Draw"]:
        """Return the most recent draw of this contest by draw date."""

        from .draw import Draw

        stmt = (
            select(Draw)
            .where(Draw.contest_id == self.id)
            .order_by(Draw.draw_date.desc(), Draw.id.desc())
        )
        return session.scalars(stmt).first()

    def has_draws(self, session: Session) -> bool:
        from .draw import Draw

        return (
            session.scalar(select(Draw.id).where(Draw.contest_id == self.id).limit(1))
            is not None
        )

    def accepts_participations(
        self, session: Session, now: Optional[datetime] = None
    ) -> bool:
        """Return whether new participations may still be registered.

        The contest must be ``active``, inside its start/end window (when
        set) and must not have any draw recorded yet.
        """

        if self.status != "active":
            return False
        if self.has_draws(session):
            return False
        current = as_utc(now) if now is not None else datetime.now(timezone.utc)
        if self.start_date is not None and current < as_utc(self.start_date):
            return False
        if self.end_date is not None and as_utc(self.end_date) < current:
            return False
        return True

    @classmethod
    def get_by_code(cls, session: Session, contest_code: str) -> Optional["Contest"]:
        return session.scalar(select(cls).where(cls.contest_code == contest_code))

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "contest_code": self.contest_code,
            "min_number": self.min_number,
            "max_number": self.max_number,
            "numbers_per_participation": self.numbers_per_participation,
            "status": self.status,
            "first_place_pct": _pct(self.first_place_pct),
            "second_place_pct": _pct(self.second_place_pct),
            "lowest_place_pct": _pct(self.lowest_place_pct),
            "admin_fee_pct": _pct(self.admin_fee_pct),
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }


def _pct(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


__all__ = ["CONTEST_STATUSES", "Contest"]
