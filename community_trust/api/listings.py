"""API routes for listings: creation, moderation and votes."""

from fastapi import APIRouter, status

from ..core.dependencies import ActorDep, CoreDep
from ..schemas import (
    CreateListingInput,
    GetUserVoteInput,
    ListingResponse,
    VerifyListingInput,
    VoteListingInput,
    VoteResponse,
    listing_to_response,
    vote_to_response,
)

router = APIRouter(prefix="/listings", tags=["listings"])


# =============================================================================
# LISTINGS
# =============================================================================


@router.post("", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def create_listing(data: CreateListingInput, actor: ActorDep, core: CoreDep):
    """Create a PENDING listing owned by the caller."""
    listing = await core.workflow.create(data, actor)
    return listing_to_response(listing)


@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(listing_id: str, actor: ActorDep, core: CoreDep):
    listing = await core.workflow.get_listing(listing_id)
    return listing_to_response(listing)


@router.post(
    "/{listing_id}/resubmit",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def resubmit_listing(listing_id: str, actor: ActorDep, core: CoreDep):
    """Open a new review cycle for one of the caller's rejected listings."""
    listing = await core.workflow.resubmit(listing_id, actor)
    return listing_to_response(listing)


# =============================================================================
# MODERATION
# =============================================================================


@router.post("/approve", response_model=ListingResponse)
async def approve_listing(data: VerifyListingInput, actor: ActorDep, core: CoreDep):
    """Approve a PENDING listing. Requires ADMIN."""
    listing = await core.workflow.approve(data, actor)
    return listing_to_response(listing)


@router.post("/reject", response_model=ListingResponse)
async def reject_listing(data: VerifyListingInput, actor: ActorDep, core: CoreDep):
    """Reject a PENDING listing. Requires ADMIN."""
    listing = await core.workflow.reject(data, actor)
    return listing_to_response(listing)


# =============================================================================
# VOTES
# =============================================================================


@router.post("/vote", response_model=VoteResponse)
async def vote_listing(data: VoteListingInput, actor: ActorDep, core: CoreDep):
    """Cast or replace the caller's vote on a listing."""
    outcome = await core.voting.vote(data, actor)
    return vote_to_response(outcome.vote, changed=outcome.changed)


@router.get("/{listing_id}/vote", response_model=VoteResponse | None)
async def get_user_vote(listing_id: str, actor: ActorDep, core: CoreDep):
    """The caller's current vote, or null."""
    value = await core.voting.get_user_vote(GetUserVoteInput(listing_id=listing_id), actor)
    if value is None:
        return None
    return VoteResponse(listing_id=listing_id, voter_id=actor.user_id, value=value, changed=False)
