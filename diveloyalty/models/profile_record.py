"""
SQL tables backing the relational profile store.

Scalar loyalty fields get real columns so the enrolled-profile query can use
an index; year maps, the expiration log, transactions and access grants are
kept as JSON in the same shape as the document layout.
"""
from datetime import datetime, date
from ..extensions import db
from .profile import ACCESS_FIELDS, GiftCardRequest, Profile, parse_timestamp


def _jsonable(value):
    """Convert nested datetimes to ISO strings for JSON columns."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


class ProfileRecord(db.Model):
    """One row per user profile."""
    __tablename__ = 'profiles'

    uid = db.Column(db.String(128), primary_key=True)

    name = db.Column(db.String(255))
    email = db.Column(db.String(255), index=True)
    loyalty_code = db.Column(db.String(50))
    certification_level = db.Column(db.String(100))

    # Loyalty balances
    lifetime_points = db.Column(db.Integer, nullable=False, default=0)
    redeemable_points = db.Column(db.Integer, nullable=False, default=0)
    join_date = db.Column(db.DateTime, index=True)  # NULL = not enrolled
    last_expiration_check = db.Column(db.DateTime)

    # {"2025": 1200, ...}
    yearly_points_earned = db.Column(db.JSON, default=dict)
    # {"2025": {"pointsReduced": 1500, "reason": "...", "date": "..."}}
    points_expirations = db.Column(db.JSON, default=dict)
    transactions = db.Column(db.JSON, default=list)

    # Capability grants: {"hasAccess": true, "grantedAt": "...", "grantedBy": "..."}
    loyalty_access = db.Column(db.JSON)
    instructor_access = db.Column(db.JSON)
    team_access = db.Column(db.JSON)
    management_rights = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<ProfileRecord {self.uid}>'

    def to_profile(self) -> Profile:
        document = {
            'uid': self.uid,
            'name': self.name,
            'email': self.email,
            'loyaltyCode': self.loyalty_code,
            'certificationLevel': self.certification_level,
            'lifetimePoints': self.lifetime_points,
            'redeemablePoints': self.redeemable_points,
            'joinDate': self.join_date,
            'lastExpirationCheck': self.last_expiration_check,
            'yearlyPointsEarned': self.yearly_points_earned,
            'pointsExpirations': self.points_expirations,
            'transactions': self.transactions,
            'loyaltyAccess': self.loyalty_access,
            'instructorAccess': self.instructor_access,
            'teamAccess': self.team_access,
            'managementRights': self.management_rights,
        }
        return Profile.from_document(self.uid, document)

    def update_from(self, profile: Profile) -> None:
        """Copy every field of a Profile onto this row."""
        document = profile.to_document()
        self.name = profile.name
        self.email = profile.email
        self.loyalty_code = profile.loyalty_code
        self.certification_level = profile.certification_level
        self.lifetime_points = profile.lifetime_points
        self.redeemable_points = profile.redeemable_points
        self.join_date = _naive_utc(profile.join_date)
        self.last_expiration_check = _naive_utc(profile.last_expiration_check)
        self.yearly_points_earned = _jsonable(document['yearlyPointsEarned'])
        self.points_expirations = _jsonable(document['pointsExpirations'])
        self.transactions = _jsonable(document['transactions'])
        for key in ACCESS_FIELDS.values():
            setattr(self, _column_for(key), _jsonable(document[key]))

    @classmethod
    def from_profile(cls, profile: Profile) -> 'ProfileRecord':
        record = cls(uid=profile.uid)
        record.update_from(profile)
        return record


class GiftCardRequestRecord(db.Model):
    """Pending gift card requests submitted from the rewards page."""
    __tablename__ = 'gift_card_requests'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), db.ForeignKey('profiles.uid'), nullable=False, index=True)
    user_name = db.Column(db.String(255))
    user_email = db.Column(db.String(255))
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    points_requested = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), default='pending')  # pending, fulfilled, rejected
    request_date = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<GiftCardRequestRecord {self.id}: ${self.amount} for {self.user_id}>'

    def to_request(self) -> GiftCardRequest:
        return GiftCardRequest(
            id=str(self.id),
            user_id=self.user_id,
            user_name=self.user_name,
            user_email=self.user_email,
            amount=self.amount,
            points_requested=self.points_requested,
            status=self.status,
            request_date=parse_timestamp(self.request_date),
        )


def _column_for(document_key: str) -> str:
    # loyaltyAccess -> loyalty_access
    return ''.join('_' + c.lower() if c.isupper() else c for c in document_key)


def _naive_utc(value):
    # SQLite DateTime columns do not keep tzinfo
    if value is None:
        return None
    value = parse_timestamp(value)
    return value.replace(tzinfo=None)
