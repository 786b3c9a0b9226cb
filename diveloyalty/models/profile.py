"""
Profile records for the loyalty program.

Profiles live in a document store as camelCase documents. The dataclasses here
are the typed view of those documents; Profile.from_document() is the single
place where missing or legacy loyalty fields get their defaults.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Capability name -> document field
ACCESS_FIELDS = {
    'loyalty': 'loyaltyAccess',
    'instructor': 'instructorAccess',
    'team': 'teamAccess',
    'management': 'managementRights',
}

ACCESS_ATTRIBUTES = {
    'loyalty': 'loyalty_access',
    'instructor': 'instructor_access',
    'team': 'team_access',
    'management': 'management_rights',
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Normalize a stored timestamp to an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), ISO-8601 strings and
    serialized {seconds, nanoseconds} timestamps.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        return parse_timestamp(parsed)
    if isinstance(value, dict) and 'seconds' in value:
        seconds = value['seconds'] + value.get('nanoseconds', 0) / 1_000_000_000
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    raise TypeError(f'Unsupported timestamp value: {value!r}')


def _year_keyed(mapping: Optional[dict]) -> Dict[int, Any]:
    # Document stores keep map keys as strings
    return {int(year): value for year, value in (mapping or {}).items()}


def whole_points(value: Any, field_name: str = 'points', uid: str = None) -> int:
    """
    Stored point value as an int, rounded half up.

    Balances written by the older dashboard can carry fractions (it did not
    floor purchase points). They are rounded once, here, and logged so the
    change is visible when the record is next written back.
    """
    if value is None or value == '':
        return 0
    amount = Decimal(str(value))
    points = int(amount.to_integral_value(rounding=ROUND_HALF_UP))
    if amount != points:
        logger.warning(f'Rounded fractional {field_name} {value} to {points} for profile {uid}')
    return points


@dataclass
class AccessGrant:
    """A capability granted to a profile by staff."""
    has_access: bool
    granted_at: Optional[datetime] = None
    granted_by: Optional[str] = None

    @classmethod
    def from_document(cls, data: Optional[dict]) -> Optional['AccessGrant']:
        if not data:
            return None
        return cls(
            has_access=bool(data.get('hasAccess')),
            granted_at=parse_timestamp(data.get('grantedAt')),
            granted_by=data.get('grantedBy'),
        )

    def to_document(self) -> dict:
        return {
            'hasAccess': self.has_access,
            'grantedAt': self.granted_at,
            'grantedBy': self.granted_by,
        }


@dataclass
class PointsExpiration:
    """One yearly reduction entry. Written once, never changed."""
    points_reduced: int
    reason: str
    date: Optional[datetime]

    @classmethod
    def from_document(cls, data: dict) -> 'PointsExpiration':
        return cls(
            points_reduced=int(data.get('pointsReduced', 0)),
            reason=data.get('reason', ''),
            date=parse_timestamp(data.get('date')),
        )

    def to_document(self) -> dict:
        return {
            'pointsReduced': self.points_reduced,
            'reason': self.reason,
            'date': self.date,
        }


@dataclass
class PointsTransaction:
    """Entry in a profile's points history (earn, redeem or adjustment)."""
    type: str
    points: int
    date: datetime
    processed_by: Optional[str] = None
    base_points: Optional[int] = None
    multiplier: Optional[float] = None
    amounts: Optional[Dict[str, float]] = None
    value: Optional[str] = None
    adjustment_type: Optional[str] = None
    affected_lifetime: Optional[bool] = None
    reason: Optional[str] = None

    _DOCUMENT_KEYS = {
        'processed_by': 'processedBy',
        'base_points': 'basePoints',
        'multiplier': 'multiplier',
        'amounts': 'amounts',
        'value': 'value',
        'adjustment_type': 'adjustmentType',
        'affected_lifetime': 'affectedLifetime',
        'reason': 'reason',
    }

    @classmethod
    def from_document(cls, data: dict) -> 'PointsTransaction':
        kwargs = {
            attr: data.get(key)
            for attr, key in cls._DOCUMENT_KEYS.items()
        }
        return cls(
            type=data['type'],
            points=int(data.get('points', 0)),
            date=parse_timestamp(data.get('date')),
            **kwargs
        )

    def to_document(self) -> dict:
        doc = {'type': self.type, 'points': self.points, 'date': self.date}
        for attr, key in self._DOCUMENT_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                doc[key] = value
        return doc


@dataclass
class Profile:
    """
    A user's profile as seen by the loyalty program.

    lifetime_points decides the tier; redeemable_points is the spendable
    balance. join_date is set once when loyalty access is first granted and
    marks the profile as enrolled.
    """
    uid: str
    name: Optional[str] = None
    email: Optional[str] = None
    loyalty_code: Optional[str] = None
    certification_level: Optional[str] = None
    lifetime_points: int = 0
    redeemable_points: int = 0
    join_date: Optional[datetime] = None
    yearly_points_earned: Dict[int, int] = field(default_factory=dict)
    points_expirations: Dict[int, PointsExpiration] = field(default_factory=dict)
    last_expiration_check: Optional[datetime] = None
    transactions: List[PointsTransaction] = field(default_factory=list)
    loyalty_access: Optional[AccessGrant] = None
    instructor_access: Optional[AccessGrant] = None
    team_access: Optional[AccessGrant] = None
    management_rights: Optional[AccessGrant] = None

    @property
    def is_enrolled(self) -> bool:
        return self.join_date is not None

    @property
    def has_loyalty_access(self) -> bool:
        return bool(self.loyalty_access and self.loyalty_access.has_access)

    def points_earned_in(self, year: int) -> int:
        return self.yearly_points_earned.get(year, 0)

    def get_access(self, capability: str) -> Optional[AccessGrant]:
        return getattr(self, ACCESS_ATTRIBUTES[capability])

    def set_access(self, capability: str, grant: Optional[AccessGrant]) -> None:
        setattr(self, ACCESS_ATTRIBUTES[capability], grant)

    @classmethod
    def from_document(cls, uid: str, data: Optional[dict]) -> 'Profile':
        """Build a Profile from a stored document, defaulting absent loyalty fields."""
        data = data or {}
        return cls(
            uid=data.get('uid') or uid,
            name=data.get('name'),
            email=data.get('email'),
            loyalty_code=data.get('loyaltyCode'),
            certification_level=data.get('certificationLevel'),
            lifetime_points=whole_points(data.get('lifetimePoints'), 'lifetimePoints', uid),
            redeemable_points=whole_points(data.get('redeemablePoints'), 'redeemablePoints', uid),
            join_date=parse_timestamp(data.get('joinDate')),
            yearly_points_earned={
                year: whole_points(points, f'yearlyPointsEarned.{year}', uid)
                for year, points in _year_keyed(data.get('yearlyPointsEarned')).items()
            },
            points_expirations={
                year: PointsExpiration.from_document(entry)
                for year, entry in _year_keyed(data.get('pointsExpirations')).items()
            },
            last_expiration_check=parse_timestamp(data.get('lastExpirationCheck')),
            transactions=[
                PointsTransaction.from_document(entry)
                for entry in data.get('transactions') or []
            ],
            loyalty_access=AccessGrant.from_document(data.get('loyaltyAccess')),
            instructor_access=AccessGrant.from_document(data.get('instructorAccess')),
            team_access=AccessGrant.from_document(data.get('teamAccess')),
            management_rights=AccessGrant.from_document(data.get('managementRights')),
        )

    def to_document(self) -> dict:
        """Serialize to the camelCase document layout."""
        doc = {
            'uid': self.uid,
            'name': self.name,
            'email': self.email,
            'loyaltyCode': self.loyalty_code,
            'certificationLevel': self.certification_level,
            'lifetimePoints': self.lifetime_points,
            'redeemablePoints': self.redeemable_points,
            'joinDate': self.join_date,
            'yearlyPointsEarned': {
                str(year): points for year, points in self.yearly_points_earned.items()
            },
            'pointsExpirations': {
                str(year): entry.to_document() for year, entry in self.points_expirations.items()
            },
            'lastExpirationCheck': self.last_expiration_check,
            'transactions': [t.to_document() for t in self.transactions],
        }
        for capability, key in ACCESS_FIELDS.items():
            grant = self.get_access(capability)
            doc[key] = grant.to_document() if grant else None
        return doc


@dataclass
class GiftCardRequest:
    """A member's request to turn redeemable points into a gift card."""
    user_id: str
    amount: Decimal
    points_requested: int
    request_date: datetime
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    status: str = 'pending'
    id: Optional[str] = None

    def to_document(self) -> dict:
        return {
            'userId': self.user_id,
            'userName': self.user_name,
            'userEmail': self.user_email,
            'amount': float(self.amount),
            'pointsRequested': self.points_requested,
            'status': self.status,
            'requestDate': self.request_date,
        }

    def to_dict(self) -> dict:
        data = self.to_document()
        data['id'] = self.id
        data['requestDate'] = self.request_date.isoformat()
        return data
