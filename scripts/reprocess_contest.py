"""Recompute scores and payouts of one contest from its stored draws.

Usage: ``python scripts/reprocess_contest.py <contest_id | contest_code>``

Exit codes: 0 on success, 1 when some draws failed, 2 when the contest
cannot be found or read or its percentages are invalid.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from bolao.db.engine import get_sessionmaker, make_engine
from bolao.errors import ConfigurationError, ReprocessError
from bolao.logging_config import configure_logging
from bolao.models import Contest
from bolao.workflows import reprocess_contest

logger = logging.getLogger(__name__)


def main(argv: Optional[list[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print(__doc__, file=sys.stderr)
        return 2

    configure_logging()
    Session = get_sessionmaker(make_engine())
    key = args[0]

    with Session.begin() as session:
        contest = session.get(Contest, int(key)) if key.isdigit() else None
        if contest is None:
            contest = Contest.get_by_code(session, key)
        if contest is None:
            logger.error("Contest %s not found", key)
            return 2

        try:
            report = reprocess_contest(session, contest)
        except (ReprocessError, ConfigurationError) as exc:
            logger.error("Reprocessing contest %s aborted: %s", contest.id, exc)
            return 2

        for failure in report.failures:
            logger.error("%s", failure)
        for record in report.rejected:
            logger.warning("Rejected %s %s: %s", record.kind, record.record_id, record.reason)

    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
