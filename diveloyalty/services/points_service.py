"""
Points Service for the dive shop loyalty program.

Staff-side operations from the loyalty dashboard:
- Enrolling members (granting loyalty access) and other capability grants
- Awarding points for purchases with category rates and tier multipliers
- Redeeming points (100 points = $1)
- Manual adjustments with a required reason
- Gift card requests from the member rewards page

Every operation reads the profile, changes it in memory and saves it back.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_CEILING
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from ..models import AccessGrant, GiftCardRequest, PointsTransaction, Profile
from ..models.profile import ACCESS_FIELDS
from ..stores.base import ProfileStore
from ..utils.exceptions import (
    InsufficientPointsError,
    NotEnrolledError,
    ProfileNotFoundError,
    ValidationError,
)
from .tier_calculator import calculate_tier
from .yearly_check import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

# Points per dollar spent, before the tier multiplier
POINT_RATES = {
    'equipment': 5,
    'service': 10,
    'courses': 10,
    'trips': 1,
    'rentals': 5,
}

# Redemption and gift card conversion
POINTS_PER_DOLLAR = 100

ADJUSTMENT_TYPES = ('add', 'subtract')


def _to_decimal(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be a number', field)
    if not amount.is_finite():
        raise ValidationError(f'{field} must be a number', field)
    return amount


def _to_positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a whole number', field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a whole number', field)
    if number != value and str(number) != str(value).strip():
        raise ValidationError(f'{field} must be a whole number', field)
    if number <= 0:
        raise ValidationError(f'{field} must be positive', field)
    return number


class PointsService:
    """
    Loyalty points operations on top of a profile store.

    Usage:
        service = PointsService(store)

        service.enroll('uid123', granted_by='staff@shop.com')
        service.earn_points('uid123', {'equipment': 200}, processed_by='staff@shop.com')
        service.redeem_points('uid123', 500, processed_by='staff@shop.com')
    """

    def __init__(self, store: ProfileStore, timezone: str = DEFAULT_TIMEZONE):
        self.store = store
        self.tz = ZoneInfo(timezone)

    # ==================== Lookups ====================

    def get_profile(self, uid: str) -> Profile:
        profile = self.store.get(uid)
        if profile is None:
            raise ProfileNotFoundError(uid)
        return profile

    def _get_enrolled_profile(self, uid: str) -> Profile:
        profile = self.get_profile(uid)
        if not profile.is_enrolled:
            raise NotEnrolledError(uid)
        return profile

    def _current_year(self, now: datetime) -> int:
        return now.astimezone(self.tz).year if now.tzinfo else now.year

    # ==================== Enrollment & Access ====================

    def enroll(self, uid: str, granted_by: str) -> Dict[str, Any]:
        """
        Grant loyalty access.

        The first grant sets the join date and starts both balances at zero.
        Granting again (e.g. after a revoke) keeps the existing join date and points.
        """
        profile = self.get_profile(uid)
        now = self.store.now()
        already_enrolled = profile.is_enrolled

        profile.loyalty_access = AccessGrant(has_access=True, granted_at=now, granted_by=granted_by)

        if not already_enrolled:
            profile.join_date = now
            profile.lifetime_points = 0
            profile.redeemable_points = 0
            profile.yearly_points_earned = {self._current_year(now): 0}

        self.store.save(profile)

        logger.info(
            f"Loyalty access granted: {uid} by {granted_by}"
            f"{' (re-granted)' if already_enrolled else ''}"
        )

        return {
            'success': True,
            'uid': uid,
            'already_enrolled': already_enrolled,
            'join_date': profile.join_date.isoformat(),
        }

    def grant_access(self, uid: str, capability: str, granted_by: str) -> Dict[str, Any]:
        """Grant one of: loyalty, instructor, team, management."""
        if capability not in ACCESS_FIELDS:
            raise ValidationError(f'Unknown capability: {capability}', 'capability')

        if capability == 'loyalty':
            return self.enroll(uid, granted_by)

        profile = self.get_profile(uid)
        profile.set_access(
            capability,
            AccessGrant(has_access=True, granted_at=self.store.now(), granted_by=granted_by)
        )
        self.store.save(profile)

        logger.info(f'{capability} access granted: {uid} by {granted_by}')
        return {'success': True, 'uid': uid, 'capability': capability}

    def revoke_access(self, uid: str, capability: str, revoked_by: str) -> Dict[str, Any]:
        """
        Remove a capability grant.

        Revoking loyalty access leaves the join date and balances untouched.
        """
        if capability not in ACCESS_FIELDS:
            raise ValidationError(f'Unknown capability: {capability}', 'capability')

        profile = self.get_profile(uid)
        profile.set_access(capability, None)
        self.store.save(profile)

        logger.info(f'{capability} access revoked: {uid} by {revoked_by}')
        return {'success': True, 'uid': uid, 'capability': capability}

    # ==================== Earning ====================

    @staticmethod
    def calculate_purchase_points(amounts: Dict[str, Any], multiplier: float = 1.0) -> int:
        """
        Points for a purchase split by category (dollar amounts).

        Fractional points are dropped.
        """
        total = Decimal('0')
        for category, amount in amounts.items():
            if category not in POINT_RATES:
                raise ValidationError(f'Unknown purchase category: {category}', 'amounts')
            dollars = _to_decimal(amount, category)
            if dollars < 0:
                raise ValidationError(f'{category} amount cannot be negative', category)
            total += dollars * POINT_RATES[category]

        return int(total * Decimal(str(multiplier)))

    def earn_points(self, uid: str, amounts: Dict[str, Any], processed_by: str) -> Dict[str, Any]:
        """
        Award points for a purchase.

        Points go to lifetime, redeemable and this year's earned counter.
        """
        if not amounts:
            raise ValidationError('Purchase amounts are required', 'amounts')

        profile = self._get_enrolled_profile(uid)
        tier = calculate_tier(profile.lifetime_points)

        points = self.calculate_purchase_points(amounts, tier.multiplier)
        base_points = self.calculate_purchase_points(amounts)
        if points <= 0:
            raise ValidationError('Purchase earns no points', 'amounts')

        now = self.store.now()
        year = self._current_year(now)

        profile.lifetime_points += points
        profile.redeemable_points += points
        profile.yearly_points_earned[year] = profile.points_earned_in(year) + points
        profile.transactions.insert(0, PointsTransaction(
            type='earn',
            points=points,
            date=now,
            processed_by=processed_by,
            base_points=base_points,
            multiplier=tier.multiplier,
            amounts={category: float(amount) for category, amount in amounts.items()},
        ))

        self.store.save(profile)

        new_tier = calculate_tier(profile.lifetime_points)
        logger.info(
            f'Points earned: {uid} +{points} pts ({base_points} base x{tier.multiplier}) '
            f'by {processed_by}'
        )

        return {
            'success': True,
            'uid': uid,
            'points': points,
            'base_points': base_points,
            'multiplier': tier.multiplier,
            'lifetime_points': profile.lifetime_points,
            'redeemable_points': profile.redeemable_points,
            'yearly_points_earned': profile.yearly_points_earned[year],
            'tier': new_tier.key,
            'tier_changed': new_tier.key != tier.key,
        }

    # ==================== Redemption ====================

    def redeem_points(self, uid: str, points: Any, processed_by: str) -> Dict[str, Any]:
        """Spend redeemable points. 100 points are worth $1."""
        points = _to_positive_int(points, 'points')
        profile = self._get_enrolled_profile(uid)

        if points > profile.redeemable_points:
            raise InsufficientPointsError(profile.redeemable_points, points)

        value = (Decimal(points) / POINTS_PER_DOLLAR).quantize(Decimal('0.01'))
        profile.redeemable_points -= points
        profile.transactions.insert(0, PointsTransaction(
            type='redeem',
            points=points,
            date=self.store.now(),
            processed_by=processed_by,
            value=str(value),
        ))

        self.store.save(profile)

        logger.info(f'Points redeemed: {uid} -{points} pts (${value}) by {processed_by}')

        return {
            'success': True,
            'uid': uid,
            'points': points,
            'value': float(value),
            'redeemable_points': profile.redeemable_points,
        }

    # ==================== Adjustments ====================

    def adjust_points(
        self,
        uid: str,
        amount: Any,
        reason: str,
        adjustment_type: str = 'add',
        affect_lifetime: bool = False,
        processed_by: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Manually add or subtract points.

        Redeemable points always move. Lifetime points move only with
        affect_lifetime. When subtracting with affect_lifetime, a redeemable
        balance smaller than the amount is floored at zero instead of rejected.
        """
        amount = _to_positive_int(amount, 'amount')
        if not reason or not str(reason).strip():
            raise ValidationError('A reason is required for adjustments', 'reason')
        if adjustment_type not in ADJUSTMENT_TYPES:
            raise ValidationError(f'Adjustment type must be one of {ADJUSTMENT_TYPES}', 'type')

        profile = self.get_profile(uid)

        if adjustment_type == 'add':
            profile.redeemable_points += amount
            if affect_lifetime:
                profile.lifetime_points += amount
        else:
            if affect_lifetime:
                if amount > profile.lifetime_points:
                    raise ValidationError(
                        'Cannot subtract more points than available lifetime points', 'amount'
                    )
                profile.lifetime_points -= amount

            if amount > profile.redeemable_points:
                if not affect_lifetime:
                    raise ValidationError(
                        'Cannot subtract more points than available redeemable points', 'amount'
                    )
                profile.redeemable_points = 0
            else:
                profile.redeemable_points -= amount

        profile.transactions.insert(0, PointsTransaction(
            type='adjustment',
            points=amount,
            date=self.store.now(),
            processed_by=processed_by,
            adjustment_type=adjustment_type,
            affected_lifetime=affect_lifetime,
            reason=reason,
        ))

        self.store.save(profile)

        logger.info(
            f"Points adjusted: {uid} {'+' if adjustment_type == 'add' else '-'}{amount} pts"
            f"{' (including lifetime points)' if affect_lifetime else ''} by {processed_by}: {reason}"
        )

        return {
            'success': True,
            'uid': uid,
            'amount': amount,
            'type': adjustment_type,
            'affected_lifetime': affect_lifetime,
            'lifetime_points': profile.lifetime_points,
            'redeemable_points': profile.redeemable_points,
            'tier': calculate_tier(profile.lifetime_points).key,
        }

    # ==================== Gift Cards ====================

    def request_gift_card(self, uid: str, amount: Any, user_email: Optional[str] = None) -> GiftCardRequest:
        """
        File a pending gift card request. Points are not deducted until staff
        fulfil the request.
        """
        dollars = _to_decimal(amount, 'amount')
        if dollars <= 0:
            raise ValidationError('amount must be positive', 'amount')

        profile = self._get_enrolled_profile(uid)
        points_needed = int((dollars * POINTS_PER_DOLLAR).to_integral_value(rounding=ROUND_CEILING))

        if points_needed > profile.redeemable_points:
            raise InsufficientPointsError(profile.redeemable_points, points_needed)

        request = GiftCardRequest(
            user_id=uid,
            user_name=profile.name,
            user_email=user_email or profile.email,
            amount=dollars,
            points_requested=points_needed,
            request_date=self.store.now(),
        )
        request.id = self.store.add_gift_card_request(request)

        logger.info(f'Gift card requested: {uid} ${dollars} ({points_needed} pts)')
        return request
