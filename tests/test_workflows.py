from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest import mock

from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from bolao import workflows
from bolao.errors import InputValidationError, ReprocessError
from bolao.models import (
    Base,
    Contest,
    Draw,
    DrawPayout,
    Participation,
    Payment,
    RateioSnapshot,
    User,
)
from bolao.scoring import PercentConfig
from bolao.workflows import (
    delete_draw,
    load_contest_snapshot,
    record_draw,
    record_payment,
    register_participation,
    reprocess_contest,
    select_draw_payouts,
    summarize_draw_payouts,
    update_draw,
)

T0 = datetime(2025, 1, 24, 20, 0, tzinfo=timezone.utc)
DEFAULTS = PercentConfig()


class WorkflowTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, future=True, expire_on_commit=False)
        self.env = mock.patch(
            "bolao.workflows.default_percent_config", return_value=DEFAULTS
        )
        self.env.start()

    def tearDown(self) -> None:
        self.env.stop()
        self.engine.dispose()

    def _seed(self, session):
        """Contest 6-of-60 with A, B and C paying 1000.00 in total."""
        contest = Contest(
            name="Bolão de Teste",
            min_number=1,
            max_number=60,
            numbers_per_participation=6,
            status="active",
        )
        users = [User(name=name) for name in ("A", "B", "C")]
        session.add(contest)
        session.add_all(users)
        session.flush()

        picks = [[1, 2, 3, 4, 5, 6], [1, 2, 3, 4, 5, 7], [10, 20, 30, 40, 50, 60]]
        amounts = ["333.34", "333.33", "333.33"]
        participations = []
        for offset, (user, numbers, amount) in enumerate(zip(users, picks, amounts)):
            participation = register_participation(
                session,
                contest,
                user,
                numbers,
                created_at=T0 - timedelta(days=2, minutes=offset),
            )
            record_payment(session, participation, Decimal(amount))
            participations.append(participation)
        return contest, participations

    @staticmethod
    def _rows(session, draw):
        return [
            (row.participation_id, row.category, row.score, Decimal(row.amount_won))
            for row in select_draw_payouts(session, draw)
        ]


class RegistrationTests(WorkflowTestCase):
    def test_register_assigns_ticket_and_stays_pending(self) -> None:
        with self.Session.begin() as session:
            contest = Contest(name="c", max_number=60, numbers_per_participation=6, status="active")
            user = User(name="u")
            session.add_all([contest, user])
            session.flush()

            participation = register_participation(
                session, contest, user, [6, 5, 4, 3, 2, 1], created_at=T0
            )

            self.assertRegex(participation.ticket_code, r"^TK-[A-Z0-9]{6}$")
            self.assertEqual(participation.status, "pending")
            self.assertEqual(participation.numbers, [1, 2, 3, 4, 5, 6])

    def test_invalid_numbers_rejected(self) -> None:
        with self.Session.begin() as session:
            contest = Contest(name="c", max_number=60, numbers_per_participation=6, status="active")
            user = User()
            session.add_all([contest, user])
            session.flush()
            with self.assertRaises(InputValidationError):
                register_participation(session, contest, user, [1, 2, 3, 4, 5, 61])

    def test_closed_after_first_draw(self) -> None:
        with self.Session.begin() as session:
            contest, _ = self._seed(session)
            record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)
            self.assertEqual(contest.status, "finished")

            late_user = User(name="D")
            session.add(late_user)
            session.flush()
            with self.assertRaises(ValueError):
                register_participation(
                    session, contest, late_user, [1, 2, 3, 4, 5, 6], created_at=T0
                )

    def test_unpersisted_records_rejected(self) -> None:
        with self.Session.begin() as session:
            with self.assertRaises(ValueError):
                register_participation(session, Contest(name="x"), User(), [1])


class PaymentTests(WorkflowTestCase):
    def test_paid_payment_activates_participation(self) -> None:
        with self.Session.begin() as session:
            _, participations = self._seed(session)
            self.assertTrue(all(p.status == "active" for p in participations))
            payment = session.scalars(select(Payment)).first()
            self.assertEqual(payment.status, "paid")
            self.assertIsNotNone(payment.paid_at)

    def test_pending_payment_keeps_participation_pending(self) -> None:
        with self.Session.begin() as session:
            contest = Contest(name="c", max_number=60, numbers_per_participation=6, status="active")
            user = User()
            session.add_all([contest, user])
            session.flush()
            participation = register_participation(session, contest, user, [1, 2, 3, 4, 5, 6])
            record_payment(session, participation, "10.00", status="pending")
            self.assertEqual(participation.status, "pending")

    def test_invalid_payments(self) -> None:
        with self.Session.begin() as session:
            _, participations = self._seed(session)
            with self.assertRaises(InputValidationError):
                record_payment(session, participations[0], Decimal("-1"))
            with self.assertRaises(InputValidationError):
                record_payment(session, participations[0], "ten")
            with self.assertRaises(ValueError):
                record_payment(session, participations[0], 10, status="chargeback")


class ReprocessWorkflowTests(WorkflowTestCase):
    def test_reference_scenario(self) -> None:
        with self.Session.begin() as session:
            contest, (a, b, c) = self._seed(session)

            draw = record_draw(
                session, contest, [6, 5, 4, 3, 2, 1], draw_date=T0, numbers_count=6
            )

            self.assertEqual((a.current_score, b.current_score, c.current_score), (6, 5, 0))
            self.assertEqual(
                self._rows(session, draw),
                [
                    (a.id, "TOP", 6, Decimal("533.00")),
                    (b.id, "SECOND", 5, Decimal("82.00")),
                    (c.id, "NONE", 0, Decimal("0.00")),
                ],
            )

            summary = summarize_draw_payouts(session, draw)
            self.assertEqual(summary["evaluated_count"], 3)
            self.assertEqual(summary["total_distributed"], Decimal("615.00"))
            self.assertIsNone(summary["categories"]["LOWEST"])
            self.assertEqual(summary["categories"]["TOP"]["winners_count"], 1)
            self.assertEqual(summary["categories"]["TOP"]["amount_per_winner"], Decimal("533.00"))
            self.assertEqual(summary["categories"]["SECOND"]["score"], 5)

            snapshot = session.scalars(select(RateioSnapshot)).one()
            self.assertEqual(snapshot.draw_id, draw.id)
            self.assertEqual(Decimal(snapshot.total_revenue), Decimal("1000.00"))
            self.assertEqual(Decimal(snapshot.admin_fee_amount), Decimal("180.00"))
            self.assertEqual(Decimal(snapshot.prize_pool_amount), Decimal("820.00"))
            self.assertEqual([d["category"] for d in snapshot.distribution], ["TOP", "SECOND"])
            self.assertEqual(
                [(w["participation_id"], w["amount"]) for w in snapshot.winners],
                [(a.id, "533.00"), (b.id, "82.00")],
            )

    def test_reprocessing_is_idempotent(self) -> None:
        with self.Session.begin() as session:
            contest, _ = self._seed(session)
            draw = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)
            first = self._rows(session, draw)

            report = reprocess_contest(session, contest)
            reprocess_contest(session, contest)

            self.assertTrue(report.ok)
            self.assertEqual(report.draws_written, (draw.id,))
            self.assertEqual(self._rows(session, draw), first)
            total_rows = session.scalar(select(func.count()).select_from(DrawPayout))
            self.assertEqual(total_rows, 3)
            snapshots = session.scalar(select(func.count()).select_from(RateioSnapshot))
            self.assertEqual(snapshots, 3)

    def test_second_draw_keeps_history_per_draw(self) -> None:
        with self.Session.begin() as session:
            contest, (a, b, c) = self._seed(session)
            first = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)
            second = record_draw(
                session, contest, [1, 2, 3, 4, 5, 7], draw_date=T0 + timedelta(days=7)
            )

            self.assertEqual((a.current_score, b.current_score, c.current_score), (6, 6, 0))
            self.assertEqual(
                self._rows(session, first),
                [
                    (a.id, "TOP", 6, Decimal("533.00")),
                    (b.id, "SECOND", 5, Decimal("82.00")),
                    (c.id, "NONE", 0, Decimal("0.00")),
                ],
            )
            self.assertEqual(
                self._rows(session, second),
                [
                    (a.id, "TOP", 6, Decimal("266.50")),
                    (b.id, "TOP", 6, Decimal("266.50")),
                    (c.id, "NONE", 0, Decimal("0.00")),
                ],
            )

    def test_update_draw_recomputes(self) -> None:
        with self.Session.begin() as session:
            contest, (a, b, c) = self._seed(session)
            draw = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)

            update_draw(session, draw, numbers=[60, 50, 40, 30, 20, 10])

            self.assertEqual(draw.numbers, [10, 20, 30, 40, 50, 60])
            self.assertEqual((a.current_score, b.current_score, c.current_score), (0, 0, 6))
            rows = {pid: (cat, amount) for pid, cat, _, amount in self._rows(session, draw)}
            self.assertEqual(rows[c.id], ("TOP", Decimal("533.00")))
            self.assertEqual(rows[a.id], ("NONE", Decimal("0.00")))

    def test_update_draw_validates_numbers(self) -> None:
        with self.Session.begin() as session:
            contest, _ = self._seed(session)
            draw = record_draw(
                session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0, numbers_count=6
            )
            with self.assertRaises(InputValidationError):
                update_draw(session, draw, numbers=[1, 2, 3])

    def test_delete_last_draw_resets_scores(self) -> None:
        with self.Session.begin() as session:
            contest, participations = self._seed(session)
            draw = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)

            report = delete_draw(session, draw)

            self.assertEqual(report.plan.evaluations, ())
            self.assertIsNone(report.snapshot_id)
            self.assertTrue(all(p.current_score == 0 for p in participations))
            self.assertEqual(session.scalar(select(func.count()).select_from(DrawPayout)), 0)
            self.assertIsNone(session.scalars(select(Draw)).first())
            remaining = session.scalars(select(RateioSnapshot)).all()
            self.assertEqual([s.draw_id for s in remaining], [None])

    def test_participation_created_after_draw_is_not_evaluated(self) -> None:
        with self.Session.begin() as session:
            contest, _ = self._seed(session)
            draw = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)

            late = Participation(
                contest_id=contest.id,
                user_id=session.scalars(select(User)).first().id,
                numbers=[1, 2, 3, 4, 5, 6],
                status="active",
                created_at=T0 + timedelta(hours=1),
            )
            session.add(late)
            session.flush()

            report = reprocess_contest(session, contest)

            self.assertEqual(late.current_score, 0)
            self.assertEqual(report.plan.latest_evaluation.scores.excluded_ids, (late.id,))
            self.assertNotIn(late.id, [row[0] for row in self._rows(session, draw)])

    def test_rejected_draw_has_payouts_cleared(self) -> None:
        with self.Session.begin() as session:
            contest, _ = self._seed(session)
            draw = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)
            draw.numbers = [0, 99]
            session.flush()

            with self.assertLogs("bolao.scoring.engine", level="WARNING"):
                report = reprocess_contest(session, contest)

            self.assertEqual([r.record_id for r in report.rejected], [draw.id])
            self.assertEqual(self._rows(session, draw), [])

    def test_write_failure_is_isolated_per_draw(self) -> None:
        with self.Session.begin() as session:
            contest, _ = self._seed(session)
            first = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)
            second = record_draw(
                session, contest, [10, 20, 30, 40, 50, 59], draw_date=T0 + timedelta(days=1)
            )
            original = workflows._replace_draw_payouts

            def failing(session_, draw_id, evaluation, processed_at):
                if draw_id == first.id:
                    raise SQLAlchemyError("disk full")
                return original(session_, draw_id, evaluation, processed_at)

            with mock.patch.object(workflows, "_replace_draw_payouts", side_effect=failing):
                with self.assertLogs("bolao.workflows", level="ERROR"):
                    report = reprocess_contest(session, contest)

            self.assertFalse(report.ok)
            self.assertEqual([f.draw_id for f in report.failures], [first.id])
            self.assertEqual(report.draws_written, (second.id,))
            self.assertEqual(len(self._rows(session, second)), 3)

    def test_failed_insert_rolls_back_only_that_draw(self) -> None:
        with self.Session.begin() as session:
            contest, (a, b, c) = self._seed(session)
            first = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)
            second = record_draw(
                session, contest, [10, 20, 30, 40, 50, 59], draw_date=T0 + timedelta(days=1)
            )
            before = self._rows(session, first)
            # extra revenue without triggering a pass, so a written draw would change
            session.add(Payment(participation_id=a.id, amount=Decimal("1000.00"), status="paid"))
            session.flush()

            real_add_all = session.add_all
            calls = []

            def add_all_failing_once(instances):
                calls.append(1)
                if len(calls) == 1:
                    raise SQLAlchemyError("insert failed")
                return real_add_all(instances)

            with mock.patch.object(session, "add_all", side_effect=add_all_failing_once):
                with self.assertLogs("bolao.workflows", level="ERROR"):
                    report = reprocess_contest(session, contest)

            self.assertEqual([f.draw_id for f in report.failures], [first.id])
            self.assertEqual(report.draws_written, (second.id,))
            self.assertEqual(self._rows(session, first), before)
            rows = {pid: (cat, amount) for pid, cat, _, amount in self._rows(session, second)}
            self.assertEqual(rows[c.id], ("SECOND", Decimal("164.00")))
            self.assertEqual(rows[a.id], ("NONE", Decimal("0.00")))

    def test_snapshot_stores_unrounded_fee_and_pool(self) -> None:
        with self.Session.begin() as session:
            contest, (a, _, _) = self._seed(session)
            record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)
            record_payment(session, a, Decimal("0.01"))
            session.expire_all()

            snapshot = session.scalars(
                select(RateioSnapshot).order_by(RateioSnapshot.id.desc())
            ).first()

            self.assertEqual(Decimal(snapshot.total_revenue), Decimal("1000.01"))
            self.assertEqual(Decimal(snapshot.admin_fee_amount), Decimal("180.0018"))
            self.assertEqual(Decimal(snapshot.prize_pool_amount), Decimal("820.0082"))

    def test_revenue_change_after_draw_reprocesses(self) -> None:
        with self.Session.begin() as session:
            contest, (a, _, _) = self._seed(session)
            draw = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)

            record_payment(session, a, Decimal("1000.00"))

            rows = {pid: amount for pid, _, _, amount in self._rows(session, draw)}
            self.assertEqual(rows[a.id], Decimal("1066.00"))

    def test_unpersisted_contest_raises(self) -> None:
        with self.Session.begin() as session:
            with self.assertRaises(ReprocessError):
                reprocess_contest(session, Contest(name="x"))


class SnapshotTests(WorkflowTestCase):
    def test_load_contest_snapshot(self) -> None:
        with self.Session.begin() as session:
            contest, participations = self._seed(session)
            pending_user = User()
            session.add(pending_user)
            session.flush()
            register_participation(session, contest, pending_user, [7, 8, 9, 10, 11, 12])
            session.add(Draw(contest_id=contest.id, numbers=[1, 2], draw_date=T0 + timedelta(days=1)))
            session.add(Draw(contest_id=contest.id, numbers=[3, 4], draw_date=T0))
            session.flush()

            snapshot = load_contest_snapshot(session, contest)

            self.assertEqual(snapshot.contest_id, contest.id)
            self.assertEqual(snapshot.total_revenue, Decimal("1000.00"))
            self.assertEqual(
                [p.id for p in snapshot.participations], [p.id for p in participations]
            )
            self.assertEqual([d.numbers for d in snapshot.draws], [(3, 4), (1, 2)])
            self.assertEqual(snapshot.rules.percent_config, DEFAULTS)

    def test_select_draw_payouts_winners_only_and_limit(self) -> None:
        with self.Session.begin() as session:
            contest, (a, b, _) = self._seed(session)
            draw = record_draw(session, contest, [1, 2, 3, 4, 5, 6], draw_date=T0)

            winners = select_draw_payouts(session, draw, winners_only=True)
            self.assertEqual([row.participation_id for row in winners], [a.id, b.id])
            top = select_draw_payouts(session, draw, limit=1)
            self.assertEqual([row.participation_id for row in top], [a.id])
            with self.assertRaises(ValueError):
                select_draw_payouts(session, draw, limit=0)


if __name__ == "__main__":
    unittest.main()
