"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InvalidTransitionError)
without importing HTTP concepts. The handler layer then translates them into
HTTP responses with a consistent body:

    {"detail": "human readable message", "error_type": "machine_readable"}

Exception hierarchy:
    DonationAPIError (base)
    ├── NotFoundError            — listing/request/transaction/user missing
    ├── ForbiddenError           — wrong actor for the operation
    ├── InvalidTransitionError   — state precondition violated (incl. double accept)
    ├── DuplicatePendingError    — seeker already has a pending request
    ├── DuplicateFeedbackError   — transaction already has feedback
    ├── NotRequestableError      — listing not open for requests
    ├── NotReceivedError         — feedback before receipt confirmation
    ├── InvalidRatingError       — rating outside 1..5
    ├── DuplicateEmailError      — profile already provisioned for the email
    └── UnavailableError         — store/transport failure, caller may retry
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class DonationAPIError(Exception):
    """Base exception for all domain errors."""

    status_code = 400
    error_type = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class NotFoundError(DonationAPIError):
    """Raised when a requested entity does not exist."""

    status_code = 404
    error_type = "not_found"

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ForbiddenError(DonationAPIError):
    """Raised when the actor is not allowed to perform the operation."""

    status_code = 403
    error_type = "forbidden"

    def __init__(self, detail: str = "You are not allowed to perform this action"):
        super().__init__(detail)


class InvalidTransitionError(DonationAPIError):
    """
    Raised when an entity is not in a state that allows the operation.

    Losing a concurrent accept race surfaces as this error too: by the time
    the loser runs, the listing is no longer APPROVED.
    """

    status_code = 409
    error_type = "invalid_transition"

    def __init__(self, entity: str, current, target=None, detail: str | None = None):
        self.entity = entity
        self.current = current
        self.target = target
        if detail is None:
            current_value = getattr(current, "value", current)
            if target is None:
                detail = f"{entity} is {current_value}"
            else:
                target_value = getattr(target, "value", target)
                detail = f"{entity} cannot move from {current_value} to {target_value}"
        super().__init__(detail)


class DuplicatePendingError(DonationAPIError):
    """Raised when a seeker already holds a PENDING request on the listing."""

    status_code = 409
    error_type = "duplicate_pending"

    def __init__(self, listing_id):
        self.listing_id = listing_id
        super().__init__(f"You already have a pending request for listing {listing_id}")


class DuplicateFeedbackError(DonationAPIError):
    """Raised when feedback was already submitted for the transaction."""

    status_code = 409
    error_type = "duplicate_feedback"

    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Feedback has already been provided for transaction {transaction_id}")


class NotRequestableError(DonationAPIError):
    """Raised when a listing is not open for new requests."""

    status_code = 409
    error_type = "not_requestable"

    def __init__(self, listing_id):
        self.listing_id = listing_id
        super().__init__(f"Listing {listing_id} is not accepting requests")


class NotReceivedError(DonationAPIError):
    """Raised when feedback is attempted before the donation was received."""

    status_code = 409
    error_type = "not_received"

    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} has not been marked as received")


class InvalidRatingError(DonationAPIError):
    """Raised when a rating is not an integer between 1 and 5."""

    status_code = 422
    error_type = "invalid_rating"

    def __init__(self, rating):
        self.rating = rating
        super().__init__(f"Rating must be an integer between 1 and 5, got {rating!r}")


class DuplicateEmailError(DonationAPIError):
    """Raised when provisioning a profile for an email that's already in use."""

    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class UnavailableError(DonationAPIError):
    """Raised when the store could not complete the operation. Safe to retry."""

    status_code = 503
    error_type = "unavailable"

    def __init__(self, detail: str = "The service is temporarily unavailable, please retry"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Every DonationAPIError subclass carries its own status code and
    error_type, so one handler covers the whole hierarchy.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(DonationAPIError)
    async def donation_api_error_handler(
        request: Request, exc: DonationAPIError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type},
        )

    @app.exception_handler(OperationalError)
    async def operational_error_handler(
        request: Request, exc: OperationalError
    ) -> JSONResponse:
        # Lock timeouts and dropped connections outside a unit of work
        logger.warning("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=UnavailableError.status_code,
            content={
                "detail": UnavailableError().detail,
                "error_type": UnavailableError.error_type,
            },
        )
