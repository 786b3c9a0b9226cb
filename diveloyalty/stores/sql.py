"""
Profile store backed by Flask-SQLAlchemy.

A reduction batch is one database transaction: every row is updated in the
same session and committed once, or rolled back as a whole.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import GiftCardRequest, PointsReduction, Profile
from ..models.profile_record import GiftCardRequestRecord, ProfileRecord
from ..utils.exceptions import BatchCommitError
from .base import ProfileStore

logger = logging.getLogger(__name__)


class SQLProfileStore(ProfileStore):

    def __init__(self, session=None):
        self.session = session or db.session

    def get(self, uid: str) -> Optional[Profile]:
        record = self.session.get(ProfileRecord, uid)
        return record.to_profile() if record else None

    def save(self, profile: Profile) -> None:
        record = self.session.get(ProfileRecord, profile.uid)
        if record is None:
            self.session.add(ProfileRecord.from_profile(profile))
        else:
            record.update_from(profile)

        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def list_enrolled(self) -> List[Profile]:
        records = self.session.query(ProfileRecord).filter(
            ProfileRecord.join_date.isnot(None)
        ).order_by(ProfileRecord.uid).all()
        return [record.to_profile() for record in records]

    def apply_reductions(self, reductions: Iterable[PointsReduction]) -> int:
        count = 0
        try:
            for reduction in reductions:
                record = self.session.get(ProfileRecord, reduction.uid)
                if record is None:
                    raise BatchCommitError(f'Profile {reduction.uid} does not exist; batch discarded')

                profile = record.to_profile()
                reduction.apply_to(profile)
                record.update_from(profile)
                count += 1

            self.session.commit()
        except BatchCommitError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f'Reduction batch rolled back: {e}')
            raise BatchCommitError('Reduction batch could not be committed', original_error=e)

        return count

    def add_gift_card_request(self, request: GiftCardRequest) -> str:
        record = GiftCardRequestRecord(
            user_id=request.user_id,
            user_name=request.user_name,
            user_email=request.user_email,
            amount=request.amount,
            points_requested=request.points_requested,
            status=request.status,
            request_date=request.request_date.replace(tzinfo=None),
        )
        self.session.add(record)

        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

        return str(record.id)
