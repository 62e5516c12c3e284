from datetime import datetime, timedelta, timezone
from decimal import Decimal
import logging

from sqlalchemy.orm import sessionmaker

from bolao.db.engine import make_engine
from bolao.logging_config import configure_logging
from bolao.models import Base, Contest, User
from bolao.workflows import (
    record_draw,
    record_payment,
    register_participation,
    summarize_draw_payouts,
)

logger = logging.getLogger(__name__)


def main() -> None:
    """Reset the development database and seed one finished contest.

    Three participants (A, B and C) join a 6-of-60 contest paying 1000.00
    in total, then a single draw of 1-6 is recorded: A takes TOP, B takes
    SECOND, C wins nothing and the LOWEST share stays unallocated.
    """
    configure_logging()
    engine = make_engine()

    # SQLite cannot drop tables with live FK references in arbitrary order.
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)

    now = datetime.now(timezone.utc)

    with Session.begin() as session:
        contest = Contest(
            name="Mega Bolão da Virada",
            contest_code="CG-DEV-000001",
            min_number=1,
            max_number=60,
            numbers_per_participation=6,
            participation_value=Decimal("333.34"),
            status="active",
            start_date=now - timedelta(days=7),
        )
        session.add(contest)

        users = [
            User(name="Alice", email="alice@example.com"),
            User(name="Bruno", email="bruno@example.com"),
            User(name="Carla", email="carla@example.com"),
        ]
        session.add_all(users)
        session.flush()

        picks = [
            [1, 2, 3, 4, 5, 6],
            [1, 2, 3, 4, 5, 7],
            [10, 20, 30, 40, 50, 60],
        ]
        amounts = [Decimal("333.34"), Decimal("333.33"), Decimal("333.33")]
        for offset, (user, numbers, amount) in enumerate(zip(users, picks, amounts)):
            participation = register_participation(
                session,
                contest,
                user,
                numbers,
                created_at=now - timedelta(days=3, minutes=offset),
            )
            record_payment(session, participation, amount, payment_method="pix")

        draw = record_draw(
            session,
            contest,
            [1, 2, 3, 4, 5, 6],
            draw_date=now - timedelta(days=1),
            numbers_count=6,
            code="DEV-0001",
        )

        summary = summarize_draw_payouts(session, draw)
        for category, data in summary["categories"].items():
            if data is None:
                logger.info("%s: no winners", category)
            else:
                logger.info(
                    "%s: %d winner(s) with %d hit(s), %s each",
                    category,
                    data["winners_count"],
                    data["score"],
                    data["amount_per_winner"],
                )

    print("Seed data inserted.")


if __name__ == "__main__":
    main()
