"""Reference data queries and admin mutations for categories and nominees."""

from __future__ import annotations

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from isekai.catalog.schemas import CategoryCreate, NomineeCreate
from isekai.db.models import Category, Nominee, Vote
from isekai.errors import ConflictError, NotFoundError

logger = structlog.get_logger()


async def list_active_categories(db: AsyncSession) -> list[tuple[Category, int]]:
    """Active categories in display order, each with its nominee count."""
    result = await db.execute(
        select(Category, func.count(Nominee.id))
        .outerjoin(Nominee, Nominee.category_id == Category.id)
        .where(Category.is_active.is_(True))
        .group_by(Category.id)
        .order_by(Category.order, Category.id)
    )
    return [(row[0], row[1]) for row in result.all()]


async def votes_by_category(db: AsyncSession, user_id: int) -> dict[int, int]:
    """The user's chosen nominee per category."""
    result = await db.execute(
        select(Vote.category_id, Vote.nominee_id).where(Vote.user_id == user_id)
    )
    return {category_id: nominee_id for category_id, nominee_id in result.all()}


async def get_category(db: AsyncSession, category_id: int) -> Category | None:
    result = await db.execute(select(Category).where(Category.id == category_id))
    return result.scalar_one_or_none()


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    """Create a category. Raises ConflictError when the slug is taken."""
    existing = await db.execute(select(Category.id).where(Category.slug == data.slug))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Category with this slug already exists")

    category = Category(
        name=data.name,
        slug=data.slug,
        element=data.element,
        description=data.description,
        order=data.order,
    )
    db.add(category)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Category with this slug already exists") from exc
    logger.info("category_created", category_id=category.id, slug=category.slug)
    return category


async def list_nominees(db: AsyncSession, category_id: int | None = None) -> list[Nominee]:
    """Nominees, newest first, optionally limited to one category."""
    stmt = select(Nominee).options(selectinload(Nominee.category)).order_by(
        Nominee.created_at.desc(), Nominee.id.desc()
    )
    if category_id is not None:
        stmt = stmt.where(Nominee.category_id == category_id)
    result = await db.execute(stmt)
    return list(result.scalars())


async def create_nominee(db: AsyncSession, data: NomineeCreate) -> Nominee:
    """Create a nominee in an existing category."""
    if await get_category(db, data.category_id) is None:
        raise NotFoundError("Category not found")

    nominee = Nominee(
        category_id=data.category_id,
        title=data.title,
        studio=data.studio,
        image_url=data.image_url,
        manga_art_url=data.manga_art_url,
        description=data.description,
    )
    db.add(nominee)
    await db.commit()
    logger.info("nominee_created", nominee_id=nominee.id, category_id=nominee.category_id)
    return nominee
