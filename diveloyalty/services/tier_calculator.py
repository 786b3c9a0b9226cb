"""
Loyalty tier table and tier lookups.

Tiers are derived from lifetime points and never stored. The bands are
contiguous, so every non-negative point total maps to exactly one tier.
"""
import math
from dataclasses import dataclass
from typing import List, Optional

# Share of a tier's minimum that must be earned each calendar year
YEARLY_REQUIREMENT_PERCENT = 10


@dataclass(frozen=True)
class Tier:
    """One loyalty band."""
    key: str
    name: str
    min_points: int
    max_points: float  # math.inf for the top band
    multiplier: float

    def contains(self, lifetime_points: int) -> bool:
        return self.min_points <= lifetime_points <= self.max_points

    def to_dict(self) -> dict:
        return {
            'tier': self.key,
            'name': self.name,
            'min': self.min_points,
            'max': None if math.isinf(self.max_points) else int(self.max_points),
            'multiplier': self.multiplier,
        }


OCEANIC_SILVER = Tier('OCEANIC_SILVER', 'Oceanic Silver', 0, 9999, 1.0)
MARINER_GOLD = Tier('MARINER_GOLD', 'Mariner Gold', 10000, 19999, 1.2)
NAUTILUS_PLATINUM = Tier('NAUTILUS_PLATINUM', 'Nautilus Platinum', 20000, 49999, 1.5)
TRIDENT_ELITE = Tier('TRIDENT_ELITE', 'Trident Elite', 50000, 99999, 2.0)
LIFETIME_ELITE = Tier('LIFETIME_ELITE', 'Lifetime Elite', 100000, math.inf, 2.0)

TIER_LEVELS = (
    OCEANIC_SILVER,
    MARINER_GOLD,
    NAUTILUS_PLATINUM,
    TRIDENT_ELITE,
    LIFETIME_ELITE,
)

TIERS_BY_KEY = {tier.key: tier for tier in TIER_LEVELS}


def calculate_tier(lifetime_points: int) -> Tier:
    """Return the tier whose range contains lifetime_points (Oceanic Silver if none does)."""
    for tier in TIER_LEVELS:
        if tier.contains(lifetime_points):
            return tier
    return OCEANIC_SILVER


def get_next_tier(tier: Tier) -> Optional[Tier]:
    """The band above `tier`, or None at the top."""
    index = TIER_LEVELS.index(tier)
    if index + 1 < len(TIER_LEVELS):
        return TIER_LEVELS[index + 1]
    return None


def required_yearly_points(tier: Tier) -> int:
    """
    Points a member must earn per calendar year to avoid the yearly reduction.

    Based on the tier minimum, not the member's own total, so everyone in a
    tier faces the same bar.
    """
    return math.ceil(tier.min_points * YEARLY_REQUIREMENT_PERCENT / 100)


def is_exempt_from_yearly_requirement(tier: Tier) -> bool:
    return tier.key == LIFETIME_ELITE.key


def list_tiers() -> List[dict]:
    """Tier table for display, lowest band first."""
    return [
        dict(
            tier.to_dict(),
            required_yearly_points=required_yearly_points(tier),
            exempt_from_yearly_requirement=is_exempt_from_yearly_requirement(tier),
        )
        for tier in TIER_LEVELS
    ]
