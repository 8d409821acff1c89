"""
Acceptance notifications — tell the seeker their request was accepted.

Notifications are fire-and-forget. The matching service commits the
accept (request, siblings, listing, transaction) first and only then calls
send_acceptance(); a notifier that raises or times out is logged and
ignored, so it can never undo the committed state. Delivery is
at-least-once at best: a crash between commit and send loses the message,
and the seeker still sees the transaction in their dashboard.

Two notifiers ship with the service:
  - LoggingNotifier: default, writes the notice to the application log
  - WebhookNotifier: POSTs the notice as JSON to NOTIFY_WEBHOOK_URL, for a
    mail/SMS relay to deliver
"""

import logging
import uuid
from typing import Protocol

import httpx
from pydantic import BaseModel

from donation_exchange.config import settings
from donation_exchange.models.listing import Listing
from donation_exchange.models.transaction import Transaction
from donation_exchange.models.user import User

logger = logging.getLogger(__name__)


class ContactCard(BaseModel):
    """How to reach one party of a transaction."""
    user_id: uuid.UUID
    name: str
    email: str
    phone: str | None = None

    @classmethod
    def for_user(cls, user: User, phone: str | None = None) -> "ContactCard":
        return cls(
            user_id=user.id,
            name=user.full_name,
            email=user.email,
            phone=phone or user.phone,
        )


class AcceptanceNotice(BaseModel):
    """Everything the seeker needs to arrange pickup."""
    transaction_id: uuid.UUID
    listing_id: uuid.UUID
    listing_title: str
    transaction_url: str
    seeker: ContactCard
    donor: ContactCard


class Notifier(Protocol):
    async def notify_accepted(
        self,
        transaction: Transaction,
        seeker_contact: ContactCard,
        donor_contact: ContactCard,
        listing_title: str,
    ) -> None:
        ...


def build_notice(
    transaction: Transaction,
    seeker_contact: ContactCard,
    donor_contact: ContactCard,
    listing_title: str,
) -> AcceptanceNotice:
    return AcceptanceNotice(
        transaction_id=transaction.id,
        listing_id=transaction.listing_id,
        listing_title=listing_title,
        transaction_url=f"{settings.APP_BASE_URL.rstrip('/')}/transactions/{transaction.id}",
        seeker=seeker_contact,
        donor=donor_contact,
    )


class LoggingNotifier:
    """Default notifier: records the acceptance in the log only."""

    async def notify_accepted(self, transaction, seeker_contact, donor_contact, listing_title):
        notice = build_notice(transaction, seeker_contact, donor_contact, listing_title)
        logger.info(
            "Request accepted: notify %s <%s> about %r, donor %s <%s>, see %s",
            notice.seeker.name,
            notice.seeker.email,
            notice.listing_title,
            notice.donor.name,
            notice.donor.email,
            notice.transaction_url,
        )


class WebhookNotifier:
    """Delivers the acceptance notice to an HTTP relay."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def notify_accepted(self, transaction, seeker_contact, donor_contact, listing_title):
        notice = build_notice(transaction, seeker_contact, donor_contact, listing_title)
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.post(
                self.url,
                json={"event": "request.accepted", **notice.model_dump(mode="json")},
                timeout=self.timeout,
            )
            response.raise_for_status()
        logger.info("Acceptance notice for transaction %s delivered to webhook", transaction.id)


def default_notifier() -> Notifier:
    if settings.NOTIFY_WEBHOOK_URL:
        return WebhookNotifier(settings.NOTIFY_WEBHOOK_URL, timeout=settings.NOTIFY_TIMEOUT_SECONDS)
    return LoggingNotifier()


async def send_acceptance(
    notifier: Notifier,
    transaction: Transaction,
    listing: Listing,
    seeker: User | None,
    donor: User | None,
) -> bool:
    """
    Send the acceptance notice, never raising, not even if a party
    couldn't be loaded.

    The donor's contact uses the phone/handle given on the listing when
    there is one. Returns True if the notifier reported success.
    """
    try:
        seeker_contact = ContactCard.for_user(seeker)
        donor_contact = ContactCard.for_user(donor, phone=listing.contact)
        await notifier.notify_accepted(transaction, seeker_contact, donor_contact, listing.title)
    except Exception as exc:
        logger.warning(
            "Failed to notify seeker %s about transaction %s: %s",
            transaction.receiver_id,
            transaction.id,
            exc,
            exc_info=True,
        )
        return False
    return True
