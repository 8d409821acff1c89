"""
Admin router — moderation and profile provisioning.

All endpoints require the ADMIN (moderator) role. Moderators decide which
listings are visible to seekers but never take part in a donation
themselves.

Endpoints:
  PUT    /admin/listings/{listing_id}/approval — Approve or reject a listing
  DELETE /admin/listings/{listing_id}          — Remove a listing
  POST   /admin/users                          — Provision a user profile

By consolidating all admin routes in one router, we avoid route-ordering
conflicts with the member routers that share path prefixes.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import get_db
from donation_exchange.dependencies import require_admin
from donation_exchange.models.user import User
from donation_exchange.schemas.listing import ApprovalRequest, ListingResponse
from donation_exchange.schemas.user import UserProvisionRequest, UserResponse
from donation_exchange.services import listing_service, user_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Listing moderation
# ---------------------------------------------------------------------------

@router.put(
    "/listings/{listing_id}/approval",
    response_model=ListingResponse,
    summary="[Admin] Approve or reject a listing",
)
async def admin_set_approval(
    listing_id: uuid.UUID,
    request: ApprovalRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    approved=true publishes a PENDING or REJECTED listing; approved=false
    withdraws a PENDING or APPROVED one. Donated and completed listings
    can no longer be moderated.
    """
    return await listing_service.set_approval(db, listing_id, request.approved)


@router.delete(
    "/listings/{listing_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a listing",
)
async def admin_delete_listing(
    listing_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await listing_service.delete_listing(
        db, listing_id, actor_id=admin.id, is_moderator=True
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# User provisioning
# ---------------------------------------------------------------------------

@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Provision a user profile",
)
async def admin_provision_user(
    request: UserProvisionRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Mirror an identity-provider account locally so its bearer token
    resolves to a profile.
    """
    return await user_service.provision_user(
        db=db,
        email=request.email,
        first_name=request.first_name,
        last_name=request.last_name,
        phone=request.phone,
        user_type=request.user_type,
        user_id=request.user_id,
    )
