"""
Profile store contract.

Services receive a store instead of reaching for a global database client.
Every implementation must offer a filtered query for enrolled profiles and an
all-or-nothing batch write for yearly reductions.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from ..models import GiftCardRequest, PointsReduction, Profile, utcnow


class ProfileStore(ABC):
    """Repository for loyalty profiles."""

    @abstractmethod
    def get(self, uid: str) -> Optional[Profile]:
        """Return the profile or None."""

    @abstractmethod
    def save(self, profile: Profile) -> None:
        """Persist one profile, creating it if needed."""

    @abstractmethod
    def list_enrolled(self) -> List[Profile]:
        """All profiles with a join date (enrolled in the loyalty program)."""

    @abstractmethod
    def apply_reductions(self, reductions: Iterable[PointsReduction]) -> int:
        """
        Write all reductions as a single atomic batch.

        Either every reduction is applied or none is. Raises BatchCommitError
        when the batch is rejected.

        Returns:
            Number of profiles written
        """

    @abstractmethod
    def add_gift_card_request(self, request: GiftCardRequest) -> str:
        """Store a gift card request and return its id."""

    def now(self) -> datetime:
        """Timestamp used for writes made through this store."""
        return utcnow()
