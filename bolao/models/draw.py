"""Official draws (sorteios) of a contest."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from bolao.scoring.scoring import DrawInput, as_utc

from .base import Base
from .id_type import ID_TYPE
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .contest import Contest
    from .payout import DrawPayout


class Draw(Base):
    """One drawing event producing the winning numbers of a contest."""

    __tablename__ = "draws"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    contest_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("contests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    """Foreign key referencing :class:`Contest`."""

    numbers: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    """Drawn numbers, sorted ascending."""

    numbers_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Expected amount of numbers; checked against ``numbers`` when set."""

    draw_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    """When the draw happened; participations created later do not count."""

    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Optional external reference, e.g. the lottery's own draw number."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    contest: Mapped["Contest"] = relationship(back_populates="draws")
    payouts: Mapped[list["DrawPayout"]] = relationship(
        back_populates="draw",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    """Payout rows computed for this draw by the last reprocessing pass."""

    def __init__(
        self,
        *,
        numbers: list[int],
        draw_date: datetime,
        contest: Optional["Contest"] = None,
        contest_id: Optional[int] = None,
        numbers_count: Optional[int] = None,
        code: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.numbers = sorted(numbers)
        self.draw_date = as_utc(draw_date)
        if contest is not None:
            self.contest = contest
        if contest_id is not None:
            self.contest_id = contest_id
        self.numbers_count = numbers_count
        self.code = code
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Draw(id={id}, contest_id={contest}, draw_date={date})>".format(
            id=self.id, contest=self.contest_id, date=self.draw_date
        )

    def to_input(self) -> DrawInput:
        """Return the value object consumed by the scoring core."""
        return DrawInput(
            id=self.id,
            numbers=tuple(self.numbers),
            draw_date=self.draw_date,
            numbers_count=self.numbers_count,
        )

    @classmethod
    def for_contest(cls, session: Session, contest_id: int) -> list["Draw"]:
        """Return the draws of a contest in chronological order."""

        stmt = (
            select(cls)
            .where(cls.contest_id == contest_id)
            .order_by(cls.draw_date.asc(), cls.id.asc())
        )
        return list(session.scalars(stmt))

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "contest_id": self.contest_id,
            "numbers": list(self.numbers),
            "numbers_count": self.numbers_count,
            "draw_date": dt_iso(self.draw_date),
            "code": self.code,
        }


__all__ = ["Draw"]
