"""
Tests for the profile dataclasses and the reduction write they receive.
"""
import logging
from datetime import datetime, timezone

import pytest

from conftest import NOW, make_profile
from diveloyalty.models import PointsReduction, Profile, parse_timestamp, whole_points
from diveloyalty.services.yearly_check import compute_reductions


class TestParseTimestamp:

    def test_naive_datetime_is_utc(self):
        assert parse_timestamp(datetime(2025, 3, 1, 12)) == datetime(2025, 3, 1, 12, tzinfo=timezone.utc)

    def test_iso_string_with_z(self):
        assert parse_timestamp('2025-03-01T12:00:00Z') == datetime(2025, 3, 1, 12, tzinfo=timezone.utc)

    def test_serialized_timestamp(self):
        assert parse_timestamp({'seconds': 1735689600, 'nanoseconds': 0}) == \
            datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_empty_values(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp('') is None

    def test_unsupported_value(self):
        with pytest.raises(TypeError):
            parse_timestamp(12345)


class TestProfileDocument:
    """Tests for Profile.from_document / to_document."""

    def test_missing_loyalty_fields_default(self):
        """A freshly signed-up profile has none of the loyalty fields."""
        profile = Profile.from_document('u1', {'name': 'Sam Shore', 'email': 'sam@example.com'})

        assert profile.uid == 'u1'
        assert profile.lifetime_points == 0
        assert profile.redeemable_points == 0
        assert profile.join_date is None
        assert profile.is_enrolled is False
        assert profile.yearly_points_earned == {}
        assert profile.points_expirations == {}
        assert profile.transactions == []
        assert profile.loyalty_access is None

    def test_year_keys_are_ints(self):
        profile = Profile.from_document('u1', {
            'joinDate': '2023-06-15T00:00:00Z',
            'lifetimePoints': 15000,
            'yearlyPointsEarned': {'2024': 3000, '2025': 500},
            'pointsExpirations': {
                '2025': {'pointsReduced': 1200, 'reason': 'Did not meet', 'date': '2025-01-01T05:00:00Z'}
            },
        })

        assert profile.points_earned_in(2025) == 500
        assert profile.points_earned_in(2023) == 0
        assert profile.points_expirations[2025].points_reduced == 1200
        assert profile.join_date == datetime(2023, 6, 15, tzinfo=timezone.utc)

    def test_to_document_uses_string_year_keys(self):
        profile = make_profile(uid='u1', lifetime_points=100, yearly_points_earned={2025: 100})

        document = profile.to_document()

        assert document['yearlyPointsEarned'] == {'2025': 100}
        assert document['lifetimePoints'] == 100
        assert document['loyaltyAccess']['hasAccess'] is True
        assert document['instructorAccess'] is None

    def test_document_round_trip(self):
        profile = make_profile(uid='u1', lifetime_points=12000, redeemable_points=300,
                               yearly_points_earned={2025: 100}, loyalty_code='DS-1')

        assert Profile.from_document('u1', profile.to_document()) == profile

    def test_fractional_balances_are_rounded_and_logged(self, caplog):
        """Older records can hold fractional points; they round half up."""
        with caplog.at_level(logging.WARNING, logger='diveloyalty.models.profile'):
            profile = Profile.from_document('u1', {
                'joinDate': '2023-06-15T00:00:00Z',
                'lifetimePoints': 15000.6,
                'redeemablePoints': 4000.4,
                'yearlyPointsEarned': {'2025': 499.5},
            })

        assert profile.lifetime_points == 15001
        assert profile.redeemable_points == 4000
        assert profile.points_earned_in(2025) == 500
        assert 'Rounded fractional lifetimePoints 15000.6 to 15001 for profile u1' in caplog.text
        assert 'redeemablePoints' in caplog.text

    def test_whole_balances_are_not_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger='diveloyalty.models.profile'):
            assert whole_points(15000.0, 'lifetimePoints', 'u1') == 15000
            assert whole_points('250', 'lifetimePoints', 'u1') == 250
            assert whole_points(None) == 0

        assert caplog.text == ''

    def test_reduction_of_fractional_balance_uses_rounded_value(self):
        """The yearly write is based on the rounded balances."""
        profile = Profile.from_document('u1', {
            'joinDate': '2023-06-15T00:00:00Z',
            'lifetimePoints': 15000.6,
            'redeemablePoints': 4000.6,
            'yearlyPointsEarned': {'2025': 500},
        })

        reduction = compute_reductions([profile], 2026, NOW)[0]

        assert reduction.points_reduced == 1501
        assert reduction.new_lifetime_points == 13500
        assert reduction.new_redeemable_points == 2500


class TestPointsReduction:
    """Tests for the write a reduction produces."""

    @pytest.fixture
    def reduction(self):
        return PointsReduction(
            uid='gold-001', year=2026, tier_key='MARINER_GOLD',
            required_yearly_points=1000, last_year_points=500,
            points_reduced=1500, redeemable_reduced=1500,
            new_lifetime_points=13500, new_redeemable_points=2500,
            checked_at=NOW,
        )

    def test_document_fields_touch_only_this_year(self, reduction):
        fields = reduction.to_document_fields()

        assert fields == {
            'lifetimePoints': 13500,
            'redeemablePoints': 2500,
            'lastExpirationCheck': NOW,
            'pointsExpirations.2026': {
                'pointsReduced': 1500,
                'reason': 'Did not meet minimum yearly requirement of 1000 points',
                'date': NOW,
            },
            'yearlyPointsEarned.2026': 0,
        }

    def test_document_fields_with_server_timestamp(self, reduction):
        sentinel = object()

        fields = reduction.to_document_fields(timestamp=sentinel)

        assert fields['lastExpirationCheck'] is sentinel
        assert fields['pointsExpirations.2026']['date'] is sentinel

    def test_apply_to_keeps_other_years(self, reduction):
        profile = make_profile(uid='gold-001', lifetime_points=15000, redeemable_points=4000,
                               yearly_points_earned={2024: 2000, 2025: 500})

        reduction.apply_to(profile)

        assert profile.lifetime_points == 13500
        assert profile.redeemable_points == 2500
        assert profile.yearly_points_earned == {2024: 2000, 2025: 500, 2026: 0}
        assert profile.points_expirations[2026].date == NOW


class TestModelsPackage:

    def test_every_export_resolves(self):
        """Names listed in __all__ exist, and retired ones stay gone."""
        import diveloyalty.models as models
        import diveloyalty.utils as utils

        for name in models.__all__:
            assert hasattr(models, name), name
        assert not hasattr(models, 'TRANSACTION_TYPES')
        assert not hasattr(utils, 'get_logger')
        assert not hasattr(utils, 'AuthorizationError')
        assert 'DATABASE_ERROR' not in utils.ErrorCode.__members__
