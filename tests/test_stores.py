"""
Tests for the profile store backends.

Tests cover:
- SQL store: round trip, enrolled query, atomic reduction batches
- Firestore store against a mocked client: queries, batch writes, commit errors
- Backend selection from config
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from flask import Flask
from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.types import StructuredQuery

from conftest import NOW, make_profile
from diveloyalty import create_app
from diveloyalty.config import validate_config
from diveloyalty.extensions import db, get_profile_store
from diveloyalty.models import GiftCardRequest, GiftCardRequestRecord, PointsReduction
from diveloyalty.services.yearly_check import YearlyLoyaltyCheck
from diveloyalty.stores import (
    MemoryProfileStore,
    SQLProfileStore,
    create_profile_store,
)
from diveloyalty.stores.firestore import FirestoreProfileStore
from diveloyalty.utils.exceptions import BatchCommitError, ConfigurationError


def _reduction(uid, lifetime=15000, redeemable=4000):
    return PointsReduction(
        uid=uid, year=2026, tier_key='MARINER_GOLD',
        required_yearly_points=1000, last_year_points=500,
        points_reduced=1500, redeemable_reduced=min(redeemable, 1500),
        new_lifetime_points=lifetime - 1500,
        new_redeemable_points=redeemable - min(redeemable, 1500),
        checked_at=NOW,
    )


# ==================== SQL ====================

@pytest.fixture
def sql_store():
    """SQL store on an in-memory SQLite database."""
    store = SQLProfileStore()
    app = create_app('testing', profile_store=store)
    with app.app_context():
        yield store
        db.session.remove()
        db.drop_all()


class TestSQLProfileStore:

    def test_save_and_get_round_trip(self, sql_store):
        profile = make_profile(uid='gold-001', lifetime_points=15000, redeemable_points=4000,
                               yearly_points_earned={2025: 500}, loyalty_code='DS-7')

        sql_store.save(profile)

        assert sql_store.get('gold-001') == profile

    def test_get_missing(self, sql_store):
        assert sql_store.get('ghost') is None

    def test_save_updates_existing_row(self, sql_store):
        sql_store.save(make_profile(uid='u1', lifetime_points=100))
        profile = sql_store.get('u1')
        profile.lifetime_points = 250

        sql_store.save(profile)

        assert sql_store.get('u1').lifetime_points == 250

    def test_list_enrolled_skips_profiles_without_join_date(self, sql_store):
        sql_store.save(make_profile(uid='b'))
        sql_store.save(make_profile(uid='a'))
        sql_store.save(make_profile(uid='c', joined=None))

        assert [p.uid for p in sql_store.list_enrolled()] == ['a', 'b']

    def test_apply_reductions(self, sql_store):
        sql_store.save(make_profile(uid='gold-001', lifetime_points=15000, redeemable_points=4000,
                                    yearly_points_earned={2025: 500}))

        assert sql_store.apply_reductions([_reduction('gold-001')]) == 1

        profile = sql_store.get('gold-001')
        assert profile.lifetime_points == 13500
        assert profile.redeemable_points == 2500
        assert profile.yearly_points_earned == {2025: 500, 2026: 0}
        assert profile.points_expirations[2026].points_reduced == 1500
        assert profile.last_expiration_check == NOW

    def test_batch_with_missing_profile_is_rolled_back(self, sql_store):
        """One bad entry discards every write in the batch."""
        sql_store.save(make_profile(uid='gold-001', lifetime_points=15000, redeemable_points=4000))

        with pytest.raises(BatchCommitError):
            sql_store.apply_reductions([_reduction('gold-001'), _reduction('ghost')])

        profile = sql_store.get('gold-001')
        assert profile.lifetime_points == 15000
        assert profile.points_expirations == {}

    def test_yearly_check_end_to_end(self, sql_store):
        sql_store.save(make_profile(uid='gold-001', lifetime_points=15000, redeemable_points=4000,
                                    yearly_points_earned={2025: 500}))
        sql_store.save(make_profile(uid='ok-001', lifetime_points=15000,
                                    yearly_points_earned={2025: 1000}))

        result = YearlyLoyaltyCheck(sql_store).run(current_year=2026)

        assert result['reduced'] == 1
        assert sql_store.get('gold-001').lifetime_points == 13500
        assert sql_store.get('ok-001').lifetime_points == 15000

    def test_add_gift_card_request(self, sql_store):
        sql_store.save(make_profile(uid='gold-001', redeemable_points=4000))
        request = GiftCardRequest(user_id='gold-001', amount=25, points_requested=2500,
                                  request_date=NOW, user_email='gold-001@example.com')

        request_id = sql_store.add_gift_card_request(request)

        record = db.session.get(GiftCardRequestRecord, int(request_id))
        assert record.user_id == 'gold-001'
        assert record.points_requested == 2500
        assert record.status == 'pending'
        assert record.to_request().request_date == NOW


# ==================== Firestore ====================

@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def fs_store(client):
    return FirestoreProfileStore(client=client)


def _snapshot(uid, data, exists=True):
    snapshot = MagicMock()
    snapshot.id = uid
    snapshot.exists = exists
    snapshot.to_dict.return_value = data
    return snapshot


class TestFirestoreProfileStore:

    def test_get(self, fs_store, client):
        client.collection.return_value.document.return_value.get.return_value = _snapshot(
            'gold-001', {'lifetimePoints': 15000, 'joinDate': '2023-06-15T00:00:00Z'}
        )

        profile = fs_store.get('gold-001')

        client.collection.assert_called_with('profiles')
        client.collection.return_value.document.assert_called_with('gold-001')
        assert profile.uid == 'gold-001'
        assert profile.lifetime_points == 15000
        assert profile.join_date == datetime(2023, 6, 15, tzinfo=timezone.utc)

    def test_get_missing(self, fs_store, client):
        client.collection.return_value.document.return_value.get.return_value = _snapshot(
            'ghost', None, exists=False
        )
        assert fs_store.get('ghost') is None

    def test_save_merges(self, fs_store, client):
        fs_store.save(make_profile(uid='u1', lifetime_points=10))

        document_ref = client.collection.return_value.document.return_value
        args, kwargs = document_ref.set.call_args
        assert args[0]['lifetimePoints'] == 10
        assert kwargs == {'merge': True}

    def test_list_enrolled_filters_on_join_date(self, fs_store, client):
        query = client.collection.return_value.where.return_value
        query.stream.return_value = [_snapshot('a', {'joinDate': '2024-02-01T00:00:00Z'})]

        profiles = fs_store.list_enrolled()

        field_filter = client.collection.return_value.where.call_args.kwargs['filter']
        assert field_filter.field_path == 'joinDate'
        # Newer client releases store `!= None` as the unary IS_NOT_NULL operator
        if field_filter.op_string == '!=':
            assert field_filter.value is None
        else:
            assert field_filter.op_string == StructuredQuery.UnaryFilter.Operator.IS_NOT_NULL
        assert [p.uid for p in profiles] == ['a']

    def test_apply_reductions_single_batch(self, fs_store, client):
        batch = client.batch.return_value

        count = fs_store.apply_reductions([_reduction('a'), _reduction('b', redeemable=200)])

        assert count == 2
        client.batch.assert_called_once()
        assert batch.update.call_count == 2
        batch.commit.assert_called_once()

        _, fields = batch.update.call_args_list[1][0]
        assert fields['lifetimePoints'] == 13500
        assert fields['redeemablePoints'] == 0
        assert fields['lastExpirationCheck'] is firestore.SERVER_TIMESTAMP
        assert fields['yearlyPointsEarned.`2026`'] == 0
        assert fields['pointsExpirations.`2026`']['pointsReduced'] == 1500
        assert fields['pointsExpirations.`2026`']['date'] is firestore.SERVER_TIMESTAMP

    def test_empty_batch_is_not_sent(self, fs_store, client):
        assert fs_store.apply_reductions([]) == 0
        client.batch.assert_not_called()

    def test_rejected_commit_raises(self, fs_store, client):
        error = gcp_exceptions.ServiceUnavailable('backend unavailable')
        client.batch.return_value.commit.side_effect = error

        with pytest.raises(BatchCommitError) as exc_info:
            fs_store.apply_reductions([_reduction('a')])

        assert exc_info.value.original_error is error
        assert exc_info.value.code == 'BATCH_COMMIT_FAILED'

    def test_add_gift_card_request(self, fs_store, client):
        client.collection.return_value.add.return_value = (NOW, MagicMock(id='req-1'))
        request = GiftCardRequest(user_id='a', amount=10, points_requested=1000, request_date=NOW)

        assert fs_store.add_gift_card_request(request) == 'req-1'
        client.collection.assert_called_with('giftCardRequests')
        assert client.collection.return_value.add.call_args[0][0]['pointsRequested'] == 1000


# ==================== Backend selection ====================

class TestStoreSelection:

    def test_memory(self):
        assert isinstance(create_profile_store({'PROFILE_STORE': 'memory'}), MemoryProfileStore)

    def test_sql_is_default(self):
        assert isinstance(create_profile_store({}), SQLProfileStore)

    def test_firestore(self):
        with patch('diveloyalty.stores.firestore.firestore.Client') as client_cls:
            store = create_profile_store({'PROFILE_STORE': 'firestore', 'FIRESTORE_PROJECT': 'dive-shop'})

        client_cls.assert_called_once_with(project='dive-shop')
        assert isinstance(store, FirestoreProfileStore)

    def test_unknown_backend_rejected(self):
        with pytest.raises(ConfigurationError):
            validate_config('testing', {'PROFILE_STORE': 'redis'})

    def test_firestore_requires_project(self):
        with pytest.raises(ConfigurationError):
            validate_config('testing', {'PROFILE_STORE': 'firestore'})

    def test_app_without_store(self):
        with pytest.raises(ConfigurationError):
            get_profile_store(Flask('bare'))

    def test_app_uses_injected_store(self, app, store):
        with app.app_context():
            assert get_profile_store() is store
