"""
Read-only rewards view for the membership card and rewards page.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from ..models import Profile
from .tier_calculator import (
    calculate_tier,
    get_next_tier,
    is_exempt_from_yearly_requirement,
    required_yearly_points,
)
from .yearly_check import DEFAULT_TIMEZONE

CARD_IMAGES = {
    'OCEANIC_SILVER': '/images/badges/OSM.png',
    'MARINER_GOLD': '/images/badges/MGM.png',
    'NAUTILUS_PLATINUM': '/images/badges/NPM.png',
    'TRIDENT_ELITE': '/images/badges/TEM.png',
    'LIFETIME_ELITE': '/images/badges/TEL.png',
}

RECENT_TRANSACTIONS = 20


def format_member_id(profile: Profile) -> str:
    """Loyalty code if one was issued, else the upper-cased uid."""
    if profile.loyalty_code:
        return profile.loyalty_code
    if not profile.uid:
        return 'MEMBER-ID'
    return profile.uid.upper()


def progress_percentage(current: int, target: int) -> float:
    if target <= 0:
        return 100.0
    return round(min(current / target * 100, 100.0), 1)


def build_rewards_summary(
    profile: Profile,
    now: datetime,
    timezone: str = DEFAULT_TIMEZONE
) -> Dict[str, Any]:
    """Everything the rewards screens show for one profile."""
    tz = ZoneInfo(timezone)
    current_year = now.astimezone(tz).year if now.tzinfo else now.year

    tier = calculate_tier(profile.lifetime_points)
    next_tier = get_next_tier(tier)
    required = required_yearly_points(tier)
    exempt = is_exempt_from_yearly_requirement(tier)
    earned_this_year = profile.points_earned_in(current_year)

    next_tier_info: Optional[Dict[str, Any]] = None
    if next_tier is not None:
        span = next_tier.min_points - tier.min_points
        next_tier_info = dict(
            next_tier.to_dict(),
            points_needed=next_tier.min_points - profile.lifetime_points,
            progress=progress_percentage(profile.lifetime_points - tier.min_points, span),
        )

    return {
        'uid': profile.uid,
        'member_id': format_member_id(profile),
        'name': profile.name,
        'certification_level': profile.certification_level,
        'enrolled': profile.is_enrolled,
        'has_loyalty_access': profile.has_loyalty_access,
        'member_since': profile.join_date.isoformat() if profile.join_date else None,
        'lifetime_points': profile.lifetime_points,
        'redeemable_points': profile.redeemable_points,
        'redeemable_value': round(profile.redeemable_points / 100, 2),
        'current_tier': tier.to_dict(),
        'card_image': CARD_IMAGES.get(tier.key, CARD_IMAGES['OCEANIC_SILVER']),
        'next_tier': next_tier_info,
        'yearly_requirement': {
            'year': current_year,
            'earned': earned_this_year,
            'required': required,
            'exempt': exempt,
            'met': exempt or earned_this_year >= required,
            'progress': 100.0 if exempt else progress_percentage(earned_this_year, required),
        },
        'points_expirations': {
            str(year): {
                'points_reduced': entry.points_reduced,
                'reason': entry.reason,
                'date': entry.date.isoformat() if entry.date else None,
            }
            for year, entry in sorted(profile.points_expirations.items())
        },
        'transactions': [
            dict(
                transaction.to_document(),
                date=transaction.date.isoformat() if transaction.date else None,
            )
            for transaction in profile.transactions[:RECENT_TRANSACTIONS]
        ],
    }
