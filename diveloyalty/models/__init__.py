"""
Data models for the dive shop loyalty program.
"""
from .profile import (
    ACCESS_FIELDS,
    AccessGrant,
    GiftCardRequest,
    PointsExpiration,
    PointsTransaction,
    Profile,
    parse_timestamp,
    whole_points,
    utcnow,
)
from .reduction import PointsReduction, REDUCTION_REASON
from .profile_record import ProfileRecord, GiftCardRequestRecord

__all__ = [
    'ACCESS_FIELDS',
    'AccessGrant',
    'GiftCardRequest',
    'PointsExpiration',
    'PointsTransaction',
    'Profile',
    'parse_timestamp',
    'whole_points',
    'utcnow',
    'PointsReduction',
    'REDUCTION_REASON',
    # SQL tables
    'ProfileRecord',
    'GiftCardRequestRecord',
]
