"""API routes for trust scores, levels and administrative corrections."""

from fastapi import APIRouter, status

from ..core.config import TrustLevel
from ..core.dependencies import ActorDep, CoreDep
from ..schemas import (
    AdjustTrustInput,
    ReverseTrustActionInput,
    TrustActionResponse,
    TrustLevelResponse,
    TrustStandingResponse,
    trust_action_to_response,
)

router = APIRouter(prefix="/trust", tags=["trust"])


def _level_response(level: TrustLevel) -> TrustLevelResponse:
    return TrustLevelResponse(
        name=level.name,
        min_score=level.min_score,
        color=level.color,
        description=level.description,
    )


@router.get("/levels", response_model=list[TrustLevelResponse])
async def list_trust_levels(core: CoreDep):
    return [_level_response(level) for level in core.ledger.levels()]


@router.get("/users/{user_id}", response_model=TrustStandingResponse)
async def get_trust_standing(user_id: str, actor: ActorDep, core: CoreDep):
    """Current score, recomputed from the ledger, and the level it reaches."""
    standing = await core.ledger.standing_for(user_id)
    return TrustStandingResponse(
        user_id=standing.user_id,
        score=standing.score,
        level=_level_response(standing.level),
        next_level=_level_response(standing.next_level) if standing.next_level else None,
    )


@router.get("/users/{user_id}/history", response_model=list[TrustActionResponse])
async def get_trust_history(user_id: str, actor: ActorDep, core: CoreDep):
    actions = await core.ledger.history_for(user_id)
    return [trust_action_to_response(a) for a in actions]


@router.post(
    "/adjust",
    response_model=TrustActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def adjust_trust(data: AdjustTrustInput, actor: ActorDep, core: CoreDep):
    """Manual adjustment. Requires ADMIN."""
    action = await core.ledger.admin_adjust(data.user_id, data.delta, actor, note=data.note)
    return trust_action_to_response(action)


@router.post(
    "/reverse",
    response_model=TrustActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reverse_trust_action(data: ReverseTrustActionInput, actor: ActorDep, core: CoreDep):
    """Cancel an entry with a compensating entry. Requires ADMIN."""
    action = await core.ledger.reverse_action(data.action_id, actor, note=data.note)
    return trust_action_to_response(action)
