"""Category, nominee and voting-period endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.auth.dependencies import get_optional_user, require_admin
from isekai.catalog import service
from isekai.catalog.schemas import (
    CategoryCreate,
    CategoryListItem,
    CategoryResponse,
    NomineeCategorySummary,
    NomineeCreate,
    NomineeListItem,
    NomineeResponse,
    VotingPeriodResponse,
)
from isekai.database import get_session
from isekai.db.models import User
from isekai.errors import NotFoundError
from isekai.schemas import Envelope, ok
from isekai.voting.scoring import nominee_tallies
from isekai.voting.service import get_open_period

router = APIRouter(prefix="/api/v1", tags=["Catalog"])


# ── Categories ──


@router.get("/categories", response_model=Envelope[list[CategoryListItem]])
async def list_categories(
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Active categories with nominee counts and the caller's vote, if signed in."""
    user_votes = await service.votes_by_category(db, user.id) if user else {}
    categories = await service.list_active_categories(db)
    return ok([
        CategoryListItem(
            **CategoryResponse.model_validate(category).model_dump(),
            nominee_count=nominee_count,
            user_voted=category.id in user_votes,
            user_vote_nominee_id=user_votes.get(category.id),
        )
        for category, nominee_count in categories
    ])


@router.post("/categories", response_model=Envelope[CategoryResponse], status_code=201)
async def create_category(
    body: CategoryCreate,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Create a category (admin only)."""
    category = await service.create_category(db, body)
    return ok(CategoryResponse.model_validate(category))


# ── Nominees ──


@router.get("/nominees", response_model=Envelope[list[NomineeListItem]])
async def list_nominees(
    category_id: int | None = Query(None),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Nominees with live vote counts and hidden-gem scores."""
    voted_nominees = set((await service.votes_by_category(db, user.id)).values()) if user else set()
    nominees = await service.list_nominees(db, category_id)
    tallies = await nominee_tallies(db)

    items = []
    for nominee in nominees:
        tally = tallies.get(nominee.id)
        items.append(NomineeListItem(
            **NomineeResponse.model_validate(nominee).model_dump(),
            category=NomineeCategorySummary.model_validate(nominee.category),
            vote_count=tally.vote_count if tally else 0,
            hidden_gem_score=tally.hidden_gem_score if tally else 0,
            user_voted=nominee.id in voted_nominees,
        ))
    return ok(items)


@router.post("/nominees", response_model=Envelope[NomineeResponse], status_code=201)
async def create_nominee(
    body: NomineeCreate,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Create a nominee (admin only)."""
    nominee = await service.create_nominee(db, body)
    return ok(NomineeResponse.model_validate(nominee))


# ── Voting period ──


@router.get("/voting-period", response_model=Envelope[VotingPeriodResponse])
async def current_voting_period(db: AsyncSession = Depends(get_session)):
    """The open voting period, for countdown display."""
    period = await get_open_period(db)
    if period is None:
        raise NotFoundError("No open voting period")
    return ok(VotingPeriodResponse.model_validate(period))
