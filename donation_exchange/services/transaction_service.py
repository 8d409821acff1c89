"""
Transaction service — receipt tracking for accepted donations.

This module handles:
  - Reading a transaction (donor or receiver only)
  - Listing the caller's transactions with any feedback attached
  - Receipt confirmation by the receiver

Receipt confirmation:
  confirm_received() is idempotent. The is_received flag is flipped with a
  guarded UPDATE ... WHERE is_received = false; only the call that
  actually flips it goes on to:
    - move the listing DONATED -> COMPLETED
    - add 1 to the donor's donation_count
  all in the same unit of work. A repeated (or concurrent duplicate)
  confirmation matches zero rows and returns the transaction unchanged,
  so donation_count can never be credited twice for one handoff.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import unit_of_work
from donation_exchange.exceptions import ForbiddenError, NotFoundError
from donation_exchange.lifecycle import TransactionState, ensure_transaction_transition
from donation_exchange.models.feedback import Feedback
from donation_exchange.models.transaction import Transaction
from donation_exchange.services import listing_service, reputation_service

logger = logging.getLogger(__name__)


async def load_transaction(
    db: AsyncSession,
    transaction_id: uuid.UUID,
    for_update: bool = False,
) -> Transaction:
    query = select(Transaction).where(Transaction.id == transaction_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    txn = result.scalar_one_or_none()

    if txn is None:
        raise NotFoundError("Transaction", transaction_id)
    return txn


async def get_transaction(
    db: AsyncSession,
    transaction_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> Transaction:
    """
    Get a single transaction, visible only to its donor and receiver.

    Raises:
        NotFoundError: If the transaction doesn't exist.
        ForbiddenError: If the actor is neither donor nor receiver.
    """
    txn = await load_transaction(db, transaction_id)
    if actor_id not in (txn.donor_id, txn.receiver_id):
        raise ForbiddenError("You do not have access to this transaction")
    return txn


async def get_feedback(db: AsyncSession, transaction_id: uuid.UUID) -> Feedback | None:
    result = await db.execute(
        select(Feedback).where(Feedback.transaction_id == transaction_id)
    )
    return result.scalar_one_or_none()


async def list_transactions(
    db: AsyncSession,
    actor_id: uuid.UUID,
) -> list[tuple[Transaction, Feedback | None]]:
    """
    The actor's transactions as donor or receiver, newest first.

    Returns:
        (transaction, feedback-or-None) pairs.
    """
    result = await db.execute(
        select(Transaction, Feedback)
        .outerjoin(Feedback, Feedback.transaction_id == Transaction.id)
        .where(or_(Transaction.donor_id == actor_id, Transaction.receiver_id == actor_id))
        .order_by(Transaction.created_at.desc(), Transaction.id)
    )
    return [(txn, feedback) for txn, feedback in result.all()]


async def confirm_received(
    db: AsyncSession,
    transaction_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> Transaction:
    """
    The receiver confirms the donation arrived.

    Confirming an already received transaction succeeds without changing
    anything.

    Raises:
        NotFoundError: If the transaction doesn't exist.
        ForbiddenError: If the actor isn't the transaction's receiver.
        InvalidTransitionError: If the listing isn't DONATED.
    """
    async with unit_of_work(db):
        txn = await load_transaction(db, transaction_id, for_update=True)
        if txn.receiver_id != actor_id:
            raise ForbiddenError("You are not authorized to mark this donation as received")

        if txn.is_received:
            logger.debug("Transaction %s already received", transaction_id)
            return txn

        ensure_transaction_transition(txn.state, TransactionState.RECEIVED)
        result = await db.execute(
            update(Transaction)
            .where(Transaction.id == transaction_id, Transaction.is_received.is_(False))
            .values(is_received=True, completed_at=datetime.now(timezone.utc))
        )
        if result.rowcount == 0:
            logger.debug("Transaction %s already received", transaction_id)
            return txn

        await listing_service.mark_completed(db, txn.listing_id)
        await reputation_service.record_donation(db, txn.donor_id)

    logger.info("Transaction %s received; donor %s credited", transaction_id, txn.donor_id)
    return txn
