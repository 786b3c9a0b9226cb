"""
Write produced by the yearly loyalty check for one profile.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from .profile import PointsExpiration, Profile

REDUCTION_REASON = 'Did not meet minimum yearly requirement of {required} points'


def _dotted(*parts: str) -> str:
    return '.'.join(parts)


@dataclass
class PointsReduction:
    """
    Balances a profile should have after missing its yearly requirement.

    The new balances are absolute values computed from the profile as it was
    read by the job, which is what gets written back.
    """
    uid: str
    year: int
    tier_key: str
    required_yearly_points: int
    last_year_points: int
    points_reduced: int
    redeemable_reduced: int
    new_lifetime_points: int
    new_redeemable_points: int
    checked_at: datetime

    @property
    def reason(self) -> str:
        return REDUCTION_REASON.format(required=self.required_yearly_points)

    def expiration(self, timestamp: Any = None) -> PointsExpiration:
        return PointsExpiration(
            points_reduced=self.points_reduced,
            reason=self.reason,
            date=self.checked_at if timestamp is None else timestamp,
        )

    def apply_to(self, profile: Profile) -> None:
        """Apply this reduction to an in-memory profile."""
        profile.lifetime_points = self.new_lifetime_points
        profile.redeemable_points = self.new_redeemable_points
        profile.last_expiration_check = self.checked_at
        profile.points_expirations[self.year] = self.expiration()
        # Fresh counter for the year that just started
        profile.yearly_points_earned[self.year] = 0

    def to_document_fields(self, timestamp: Any = None,
                           field_path: Callable[..., str] = _dotted) -> dict:
        """
        Field-path update for a document store.

        Only the touched map entries are addressed so other years in
        pointsExpirations and yearlyPointsEarned stay as they are.
        """
        stamp = self.checked_at if timestamp is None else timestamp
        year = str(self.year)
        return {
            'lifetimePoints': self.new_lifetime_points,
            'redeemablePoints': self.new_redeemable_points,
            'lastExpirationCheck': stamp,
            field_path('pointsExpirations', year): self.expiration(stamp).to_document(),
            field_path('yearlyPointsEarned', year): 0,
        }

    def to_dict(self) -> dict:
        return {
            'uid': self.uid,
            'year': self.year,
            'tier': self.tier_key,
            'required_yearly_points': self.required_yearly_points,
            'last_year_points': self.last_year_points,
            'points_reduced': self.points_reduced,
            'redeemable_reduced': self.redeemable_reduced,
            'new_lifetime_points': self.new_lifetime_points,
            'new_redeemable_points': self.new_redeemable_points,
            'reason': self.reason,
        }
