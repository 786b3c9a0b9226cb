"""
Shared pytest fixtures.

The app runs on the in-memory profile store with a fixed clock set to
midnight, January 1st 2026 in the shop timezone (05:00 UTC).
"""
from datetime import datetime, timezone

import pytest

from diveloyalty import create_app
from diveloyalty.models import AccessGrant, Profile
from diveloyalty.stores import MemoryProfileStore

NOW = datetime(2026, 1, 1, 5, 0, tzinfo=timezone.utc)
CURRENT_YEAR = 2026
STAFF_EMAIL = 'staff@diveshop.test'


def make_profile(uid='diver-001', joined=datetime(2023, 6, 15, tzinfo=timezone.utc), **kwargs):
    """Build an enrolled profile. Pass joined=None for a profile outside the program."""
    loyalty_access = None
    if joined is not None:
        loyalty_access = AccessGrant(has_access=True, granted_at=joined, granted_by=STAFF_EMAIL)
    kwargs.setdefault('loyalty_access', loyalty_access)
    kwargs.setdefault('name', 'Jordan Reef')
    kwargs.setdefault('email', f'{uid}@example.com')
    return Profile(uid=uid, join_date=joined, **kwargs)


@pytest.fixture
def store():
    """Empty in-memory profile store with a fixed clock."""
    return MemoryProfileStore(clock=lambda: NOW)


@pytest.fixture
def app(store):
    """Create application for testing."""
    app = create_app('testing', profile_store=store)
    yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def staff_headers():
    """Headers for a known staff member."""
    return {
        'X-Staff-Email': STAFF_EMAIL,
        'Content-Type': 'application/json'
    }


@pytest.fixture
def gold_member(store):
    """Mariner Gold member who earned too little last year."""
    profile = make_profile(
        uid='gold-001',
        lifetime_points=15000,
        redeemable_points=4000,
        yearly_points_earned={2025: 500},
    )
    store.save(profile)
    return profile


@pytest.fixture
def new_profile(store):
    """Signed-up profile that has not joined the loyalty program."""
    profile = make_profile(uid='newbie-001', joined=None)
    store.save(profile)
    return profile
