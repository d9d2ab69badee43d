"""Cast, list and remove votes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.auth.dependencies import get_current_user
from isekai.database import get_session
from isekai.db.models import User
from isekai.schemas import Envelope, done, ok
from isekai.voting.schemas import CastVoteRequest, CastVoteResponse, UserVoteResponse, VoteResponse
from isekai.voting.service import VoteManager
from isekai.ws.broadcaster import Broadcaster, get_broadcaster

router = APIRouter(prefix="/api/v1", tags=["Voting"])


def get_vote_manager(
    db: AsyncSession = Depends(get_session),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> VoteManager:
    return VoteManager(db, broadcaster)


@router.post("/vote", response_model=Envelope[CastVoteResponse])
async def cast_vote(
    body: CastVoteRequest,
    user: User = Depends(get_current_user),
    manager: VoteManager = Depends(get_vote_manager),
):
    """Cast a vote, or move an existing vote in the same category."""
    result = await manager.cast_vote(user.id, body.category_id, body.nominee_id)
    return ok(CastVoteResponse(
        vote=VoteResponse.model_validate(result.vote),
        is_update=result.is_update,
        is_hidden_gem=result.is_hidden_gem,
        achievements_unlocked=list(result.achievements_unlocked),
    ))


@router.get("/vote", response_model=Envelope[list[UserVoteResponse]])
async def list_my_votes(
    user: User = Depends(get_current_user),
    manager: VoteManager = Depends(get_vote_manager),
):
    """The caller's votes, newest first."""
    votes = await manager.list_votes(user.id)
    return ok([UserVoteResponse.model_validate(v) for v in votes])


@router.delete("/vote", response_model=Envelope[None])
async def remove_vote(
    vote_id: int = Query(..., alias="id"),
    user: User = Depends(get_current_user),
    manager: VoteManager = Depends(get_vote_manager),
):
    """Remove a vote. Owners may remove their own; admins may remove any."""
    await manager.remove_vote(user, vote_id)
    return done("Vote removed successfully")
