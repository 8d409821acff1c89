"""
Feedback service — one rating per completed transaction.

submit_feedback() creates the Feedback row and credits the donor's
total_rating / rating_count in a single unit of work: either both writes
commit or neither does.

Exactly one feedback per transaction:
  The service checks for existing feedback first, and the UNIQUE
  constraint on feedback.transaction_id rejects a concurrent second insert,
  which is reported as DuplicateFeedbackError with nothing committed (so
  the donor's counters move only once).
"""

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import unit_of_work
from donation_exchange.exceptions import (
    DuplicateFeedbackError,
    ForbiddenError,
    InvalidRatingError,
    NotReceivedError,
)
from donation_exchange.models.feedback import Feedback
from donation_exchange.services import reputation_service, transaction_service

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating) -> int:
    """Ratings are whole stars from 1 to 5."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(rating)
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingError(rating)
    return rating


async def submit_feedback(
    db: AsyncSession,
    transaction_id: uuid.UUID,
    actor_id: uuid.UUID,
    rating,
    comment: str | None = None,
) -> Feedback:
    """
    The receiver rates the donor after the handoff.

    Checks run in this order: receiver only, receipt confirmed, no earlier
    feedback, valid rating.

    Raises:
        NotFoundError: If the transaction doesn't exist.
        ForbiddenError: If the actor isn't the transaction's receiver.
        NotReceivedError: If receipt hasn't been confirmed yet.
        DuplicateFeedbackError: If feedback already exists for the transaction.
        InvalidRatingError: If rating isn't an integer from 1 to 5.
    """
    async with unit_of_work(db):
        txn = await transaction_service.load_transaction(db, transaction_id, for_update=True)
        if txn.receiver_id != actor_id:
            raise ForbiddenError("You are not authorized to provide feedback for this transaction")
        if not txn.is_received:
            raise NotReceivedError(transaction_id)
        if await transaction_service.get_feedback(db, transaction_id) is not None:
            raise DuplicateFeedbackError(transaction_id)
        rating = validate_rating(rating)

        feedback = Feedback(
            transaction_id=transaction_id,
            giver_id=txn.receiver_id,
            receiver_id=txn.donor_id,
            rating=rating,
            comment=comment or None,
        )
        db.add(feedback)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise DuplicateFeedbackError(transaction_id) from exc

        await reputation_service.record_rating(db, txn.donor_id, rating)

    logger.info(
        "Feedback %s recorded for transaction %s: donor %s rated %d",
        feedback.id,
        transaction_id,
        txn.donor_id,
        rating,
    )
    return feedback
