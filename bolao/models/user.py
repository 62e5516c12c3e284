from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .participation import Participation


class User(Base):
    """Participant account that owns participations."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, index=True, nullable=True
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

    participations: Mapped[list["Participation"]] = relationship(back_populates="user")

    @validates("email")
    def _normalize_email(self, _key: str, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        normalized = value.strip().lower()
        return normalized or None

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<User(id={self.id}, name={self.name!r})>"

    @classmethod
    def get_by_email(cls, session: Session, email: str) -> Optional["User"]:
        """Get user by email address (case-insensitive)."""
        return session.scalar(select(cls).where(cls.email == email.strip().lower()))
