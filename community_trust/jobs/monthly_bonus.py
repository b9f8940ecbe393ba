"""
Monthly Bonus Job: rewards users who were active in a calendar month.

This module runs as a scheduled job (via cron or similar) once a month,
after the month has closed. Which users count as active is decided by the
caller; the job only guarantees that each of them receives the
MONTHLY_ACTIVE_BONUS for a given period exactly once, however many times
it is re-run.

Typical cron schedule: 0 3 1 * * (first of the month, 3 AM)
"""

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any

from ..core.config import Settings, get_settings
from ..core.database import close_db, init_db
from ..models import TrustActionKind
from ..services.container import PolicyCore
from ..services.errors import PolicyError, ValidationError
from ..stores.factory import create_store

logger = logging.getLogger(__name__)

_PERIOD = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def period_reference(period: str) -> str:
    """Ledger reference for a ``YYYY-MM`` period."""
    if not _PERIOD.match(period or ""):
        raise ValidationError(f"Period must be YYYY-MM, got {period!r}")
    return f"monthly:{period}"


def previous_period(now: datetime | None = None) -> str:
    """The calendar month before ``now``, as ``YYYY-MM``."""
    now = now or datetime.now(timezone.utc)
    year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    return f"{year:04d}-{month:02d}"


async def _grant_one(core: PolicyCore, user_id: str, period: str, reference: str) -> bool:
    """Grant one user's bonus; False when it was already granted."""
    async with core.locks.hold(f"monthly-bonus:{user_id}:{period}"):
        async with core.store.transaction():
            existing = await core.store.find_trust_action(
                user_id, TrustActionKind.MONTHLY_ACTIVE_BONUS, reference
            )
            if existing is not None:
                return False
            await core.ledger.apply_policy_action(
                user_id=user_id,
                kind=TrustActionKind.MONTHLY_ACTIVE_BONUS,
                reference_id=reference,
            )
            return True


async def grant_monthly_active_bonus(
    core: PolicyCore,
    user_ids: list[str],
    period: str,
) -> dict[str, Any]:
    """
    Grant the bonus for ``period`` to every user in ``user_ids``.

    Users that already hold the bonus for the period are skipped. A failure
    for one user is recorded in ``errors`` and the run carries on.

    Returns:
        Job result summary
    """
    reference = period_reference(period)
    results = {
        "period": period,
        "granted": 0,
        "skipped": 0,
        "errors": [],
    }

    for user_id in dict.fromkeys(user_ids):
        if not user_id:
            continue
        try:
            if await _grant_one(core, user_id, period, reference):
                results["granted"] += 1
            else:
                results["skipped"] += 1
        except PolicyError as e:
            logger.error(f"Monthly bonus for user {user_id} failed: {e.message}")
            results["errors"].append(f"User {user_id}: {e.message}")

    logger.info(
        f"Monthly bonus {period}: {results['granted']} granted, "
        f"{results['skipped']} already rewarded, {len(results['errors'])} errors"
    )
    return results


async def run_monthly_bonus_job(
    user_ids: list[str],
    period: str | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Main entry point: build the store from settings and grant the bonus."""
    settings = settings or get_settings()
    period = period or previous_period()
    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting monthly bonus job for {period} at {start_time.isoformat()}")

    store, engine = create_store(settings)
    try:
        if engine is not None:
            await init_db(engine)
        results = await grant_monthly_active_bonus(PolicyCore(store, settings), user_ids, period)
    except Exception as e:
        logger.error(f"Monthly bonus job failed: {e}")
        raise
    finally:
        if engine is not None:
            await close_db(engine)

    end_time = datetime.now(timezone.utc)
    results["duration_seconds"] = (end_time - start_time).total_seconds()
    return results


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for the monthly bonus job."""
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Grant the monthly active bonus")
    parser.add_argument(
        "--period",
        default=None,
        help="Month to reward as YYYY-MM (default: previous month)",
    )
    parser.add_argument(
        "--users-file",
        type=argparse.FileType("r"),
        default=sys.stdin,
        help="File with one active user id per line (default: stdin)",
    )

    args = parser.parse_args()
    user_ids = [line.strip() for line in args.users_file if line.strip()]

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        results = asyncio.run(run_monthly_bonus_job(user_ids, period=args.period))
        print(f"Job completed: {results}")
    except Exception as e:
        print(f"Job failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
