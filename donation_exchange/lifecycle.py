"""
State machines for listings, requests, and transactions.

Every status an entity can hold is an explicit enum, and every legal move
between statuses is listed in one transition table per entity. Services
never compare status strings ad hoc: they call ensure_*_transition() before
writing, so the whole lifecycle can be audited (and tested) from this file.

Listing:

    PENDING ──approve──> APPROVED ──accept request──> DONATED ──receipt──> COMPLETED
       │                   │  ^
       └──reject──> REJECTED ┘  (a rejected listing can be approved on re-review,
                                 an approved one can be rejected)

Request:

    PENDING ──accept──> ACCEPTED        (terminal)
    PENDING ──reject / cancel / sibling accepted──> REJECTED   (terminal)

Transaction:

    AWAITING_RECEIPT ──confirm──> RECEIVED   (terminal; is_received is monotonic)
"""

import enum

from donation_exchange.exceptions import InvalidTransitionError


class ListingKind(str, enum.Enum):
    """An offer of goods (donation) or an ask for goods (requirement)."""
    DONATION = "DONATION"
    REQUIREMENT = "REQUIREMENT"


class ListingStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DONATED = "DONATED"
    COMPLETED = "COMPLETED"


class Urgency(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class TransactionState(str, enum.Enum):
    """Derived from Transaction.is_received; not stored separately."""
    AWAITING_RECEIPT = "AWAITING_RECEIPT"
    RECEIVED = "RECEIVED"


LISTING_TRANSITIONS: dict[ListingStatus, frozenset[ListingStatus]] = {
    ListingStatus.PENDING: frozenset({ListingStatus.APPROVED, ListingStatus.REJECTED}),
    ListingStatus.APPROVED: frozenset({ListingStatus.REJECTED, ListingStatus.DONATED}),
    ListingStatus.REJECTED: frozenset({ListingStatus.APPROVED}),
    ListingStatus.DONATED: frozenset({ListingStatus.COMPLETED}),
    ListingStatus.COMPLETED: frozenset(),
}

REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.ACCEPTED, RequestStatus.REJECTED}),
    RequestStatus.ACCEPTED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
}

TRANSACTION_TRANSITIONS: dict[TransactionState, frozenset[TransactionState]] = {
    TransactionState.AWAITING_RECEIPT: frozenset({TransactionState.RECEIVED}),
    TransactionState.RECEIVED: frozenset(),
}


def can_transition_listing(current: ListingStatus, target: ListingStatus) -> bool:
    return target in LISTING_TRANSITIONS[ListingStatus(current)]


def can_transition_request(current: RequestStatus, target: RequestStatus) -> bool:
    return target in REQUEST_TRANSITIONS[RequestStatus(current)]


def can_transition_transaction(current: TransactionState, target: TransactionState) -> bool:
    return target in TRANSACTION_TRANSITIONS[TransactionState(current)]


def ensure_listing_transition(current: ListingStatus, target: ListingStatus) -> None:
    if not can_transition_listing(current, target):
        raise InvalidTransitionError("Listing", ListingStatus(current), target)


def ensure_request_transition(current: RequestStatus, target: RequestStatus) -> None:
    if not can_transition_request(current, target):
        raise InvalidTransitionError("Request", RequestStatus(current), target)


def ensure_transaction_transition(current: TransactionState, target: TransactionState) -> None:
    if not can_transition_transaction(current, target):
        raise InvalidTransitionError("Transaction", TransactionState(current), target)


def transaction_state(is_received: bool) -> TransactionState:
    return TransactionState.RECEIVED if is_received else TransactionState.AWAITING_RECEIPT
