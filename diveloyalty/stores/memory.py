"""
In-process profile store.

Used by the test suite and for local runs without a database. Profiles are
copied on the way in and out so callers cannot mutate stored state by accident.
"""
import copy
import itertools
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from ..models import GiftCardRequest, PointsReduction, Profile
from ..utils.exceptions import BatchCommitError
from .base import ProfileStore


class MemoryProfileStore(ProfileStore):

    def __init__(self, profiles: Iterable[Profile] = (), clock: Callable[[], datetime] = None):
        self.clock = clock
        self._profiles: Dict[str, Profile] = {}
        self.gift_card_requests: Dict[str, GiftCardRequest] = {}
        self._ids = itertools.count(1)
        for profile in profiles:
            self.save(profile)

    def now(self) -> datetime:
        return self.clock() if self.clock else super().now()

    def get(self, uid: str) -> Optional[Profile]:
        profile = self._profiles.get(uid)
        return copy.deepcopy(profile) if profile else None

    def save(self, profile: Profile) -> None:
        self._profiles[profile.uid] = copy.deepcopy(profile)

    def list_enrolled(self) -> List[Profile]:
        return [
            copy.deepcopy(profile)
            for uid, profile in sorted(self._profiles.items())
            if profile.join_date is not None
        ]

    def apply_reductions(self, reductions: Iterable[PointsReduction]) -> int:
        reductions = list(reductions)

        # Build every updated profile first; swap them in only if all succeed
        staged = {}
        for reduction in reductions:
            current = staged.get(reduction.uid) or self._profiles.get(reduction.uid)
            if current is None:
                raise BatchCommitError(f'Profile {reduction.uid} does not exist; batch discarded')
            updated = copy.deepcopy(current)
            reduction.apply_to(updated)
            staged[reduction.uid] = updated

        self._profiles.update(staged)
        return len(reductions)

    def add_gift_card_request(self, request: GiftCardRequest) -> str:
        request_id = str(next(self._ids))
        stored = copy.deepcopy(request)
        stored.id = request_id
        self.gift_card_requests[request_id] = stored
        return request_id
