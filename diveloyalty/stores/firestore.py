"""
Profile store backed by Cloud Firestore.

Profiles are documents in the `profiles` collection keyed by uid, in the
camelCase layout the mobile app reads. Yearly reductions go out as one
WriteBatch and use server timestamps.
"""
import logging
from typing import Iterable, List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath

from ..models import GiftCardRequest, PointsReduction, Profile
from ..utils.exceptions import BatchCommitError
from .base import ProfileStore

logger = logging.getLogger(__name__)

PROFILES_COLLECTION = 'profiles'
GIFT_CARD_REQUESTS_COLLECTION = 'giftCardRequests'


def _field_path(*parts: str) -> str:
    # Quotes segments such as years that are not plain identifiers
    return FieldPath(*parts).to_api_repr()


class FirestoreProfileStore(ProfileStore):

    def __init__(self, client: firestore.Client = None, project: str = None):
        self.client = client or firestore.Client(project=project)

    @property
    def profiles(self):
        return self.client.collection(PROFILES_COLLECTION)

    def get(self, uid: str) -> Optional[Profile]:
        snapshot = self.profiles.document(uid).get()
        if not snapshot.exists:
            return None
        return Profile.from_document(snapshot.id, snapshot.to_dict())

    def save(self, profile: Profile) -> None:
        self.profiles.document(profile.uid).set(profile.to_document(), merge=True)

    def list_enrolled(self) -> List[Profile]:
        query = self.profiles.where(filter=FieldFilter('joinDate', '!=', None))
        return [
            Profile.from_document(snapshot.id, snapshot.to_dict())
            for snapshot in query.stream()
        ]

    def apply_reductions(self, reductions: Iterable[PointsReduction]) -> int:
        reductions = list(reductions)
        if not reductions:
            return 0

        batch = self.client.batch()
        for reduction in reductions:
            batch.update(
                self.profiles.document(reduction.uid),
                reduction.to_document_fields(
                    timestamp=firestore.SERVER_TIMESTAMP,
                    field_path=_field_path,
                ),
            )

        try:
            batch.commit()
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f'Firestore batch rejected: {e}')
            raise BatchCommitError('Reduction batch could not be committed', original_error=e)

        return len(reductions)

    def add_gift_card_request(self, request: GiftCardRequest) -> str:
        _, ref = self.client.collection(GIFT_CARD_REQUESTS_COLLECTION).add(request.to_document())
        return ref.id
