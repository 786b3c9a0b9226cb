"""
Yearly Loyalty Check.

Once a year (midnight, January 1st, shop timezone) every enrolled member is
checked against the activity requirement of their tier: they must have earned
at least 10% of the tier's minimum during the previous calendar year. Members
who fall short lose 10% of their lifetime points (rounded up) and the same
number of redeemable points, capped at what they hold.

Rules:
- Members who joined in the current calendar year are not checked yet
- Lifetime Elite is exempt
- A member already reduced for this year is not reduced again
- Meeting the requirement exactly counts as meeting it; no write happens

The job is split in two: evaluate_profile()/compute_reductions() are pure and
do all of the math, YearlyLoyaltyCheck.run() fetches profiles, computes and
commits every reduction in one atomic batch. Nothing is written if any step
fails, and the error is re-raised to whoever triggered the run.
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ..models import PointsReduction, Profile
from ..stores.base import ProfileStore
from .tier_calculator import (
    calculate_tier,
    is_exempt_from_yearly_requirement,
    required_yearly_points,
)

logger = logging.getLogger(__name__)

# Share of lifetime points removed when the requirement is missed
REDUCTION_PERCENT = 10

DEFAULT_TIMEZONE = 'America/New_York'

# Evaluation outcomes
STATUS_NOT_ENROLLED = 'not_enrolled'
STATUS_FIRST_YEAR = 'first_year'
STATUS_EXEMPT = 'exempt'
STATUS_ALREADY_CHECKED = 'already_checked'
STATUS_MET_REQUIREMENT = 'met_requirement'
STATUS_REDUCED = 'reduced'


def points_reduction_for(lifetime_points: int) -> int:
    """10% of lifetime points, rounded up."""
    return math.ceil(lifetime_points * REDUCTION_PERCENT / 100)


def _join_year(join_date: datetime, tz: Optional[ZoneInfo]) -> int:
    if tz is not None and join_date.tzinfo is not None:
        return join_date.astimezone(tz).year
    return join_date.year


def evaluate_profile(
    profile: Profile,
    current_year: int,
    now: datetime,
    tz: Optional[ZoneInfo] = None
) -> Tuple[str, Optional[PointsReduction]]:
    """
    Decide what the yearly check does to one profile.

    Returns:
        (status, reduction) where reduction is None unless status is 'reduced'
    """
    if profile.join_date is None:
        return STATUS_NOT_ENROLLED, None

    years_since_join = current_year - _join_year(profile.join_date, tz)
    if years_since_join < 1:
        return STATUS_FIRST_YEAR, None

    tier = calculate_tier(profile.lifetime_points)
    if is_exempt_from_yearly_requirement(tier):
        return STATUS_EXEMPT, None

    if current_year in profile.points_expirations:
        return STATUS_ALREADY_CHECKED, None

    required = required_yearly_points(tier)
    last_year_points = profile.points_earned_in(current_year - 1)
    if last_year_points >= required:
        return STATUS_MET_REQUIREMENT, None

    points_reduced = points_reduction_for(profile.lifetime_points)
    redeemable_reduced = min(profile.redeemable_points, points_reduced)

    return STATUS_REDUCED, PointsReduction(
        uid=profile.uid,
        year=current_year,
        tier_key=tier.key,
        required_yearly_points=required,
        last_year_points=last_year_points,
        points_reduced=points_reduced,
        redeemable_reduced=redeemable_reduced,
        new_lifetime_points=profile.lifetime_points - points_reduced,
        new_redeemable_points=profile.redeemable_points - redeemable_reduced,
        checked_at=now,
    )


def compute_reductions(
    profiles: Iterable[Profile],
    current_year: int,
    now: datetime,
    tz: Optional[ZoneInfo] = None
) -> List[PointsReduction]:
    """All reductions the yearly check would write for these profiles."""
    reductions = []
    for profile in profiles:
        _, reduction = evaluate_profile(profile, current_year, now, tz)
        if reduction is not None:
            reductions.append(reduction)
    return reductions


class YearlyLoyaltyCheck:
    """
    Runs the yearly check against a profile store.

    Usage:
        check = YearlyLoyaltyCheck(store)
        summary = check.run()                 # current year, commits
        preview = check.run(dry_run=True)     # compute only
    """

    def __init__(self, store: ProfileStore, timezone: str = DEFAULT_TIMEZONE):
        self.store = store
        self.tz = ZoneInfo(timezone)

    def current_year(self, now: datetime) -> int:
        return now.astimezone(self.tz).year if now.tzinfo else now.year

    def run(self, current_year: int = None, dry_run: bool = False) -> Dict[str, Any]:
        """
        Check every enrolled profile and commit the reductions as one batch.

        Args:
            current_year: Year being started (defaults to the current year in the shop timezone)
            dry_run: If True, compute but don't write

        Returns:
            Summary of the run

        Raises:
            Whatever the store raises while listing or committing; no partial writes
        """
        now = self.store.now()
        if current_year is None:
            current_year = self.current_year(now)

        results = {
            'year': current_year,
            'processed': 0,
            'reduced': 0,
            'skipped': 0,
            'total_points_reduced': 0,
            'skip_reasons': {},
            'details': [],
            'dry_run': dry_run,
            'run_date': now.isoformat(),
        }

        logger.info(f"{'[DRY RUN] ' if dry_run else ''}Yearly loyalty check starting for {current_year}")

        try:
            profiles = self.store.list_enrolled()
            reductions = []

            for profile in profiles:
                results['processed'] += 1
                status, reduction = evaluate_profile(profile, current_year, now, self.tz)

                if reduction is None:
                    results['skipped'] += 1
                    results['skip_reasons'][status] = results['skip_reasons'].get(status, 0) + 1
                    continue

                reductions.append(reduction)
                results['reduced'] += 1
                results['total_points_reduced'] += reduction.points_reduced
                results['details'].append(dict(
                    reduction.to_dict(),
                    status='would_reduce' if dry_run else 'reduced'
                ))

            if reductions and not dry_run:
                self.store.apply_reductions(reductions)

        except Exception:
            logger.exception(f'Error in yearly loyalty check for {current_year}')
            raise

        logger.info(
            f"{'[DRY RUN] ' if dry_run else ''}Yearly loyalty check completed for {current_year}: "
            f"{results['processed']} processed, {results['reduced']} reduced, "
            f"{results['total_points_reduced']} points removed"
        )

        return results
