"""
Forum repositories: categories, posts, replies and reactions.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, delete
from grihome.repositories.base import BaseRepository
from grihome.models.forum import (
    ForumCategory, ForumPost, ForumReply, PostReaction, ReplyReaction, ReactionType
)
from typing import Optional, List, Dict, Tuple, Iterable
import uuid
import logging

logger = logging.getLogger(__name__)


class ForumCategoryRepository(BaseRepository[ForumCategory]):

    def __init__(self, db: AsyncSession):
        super().__init__(ForumCategory, db)

    async def list_active(self) -> List[ForumCategory]:
        result = await self.db.execute(
            select(ForumCategory)
            .where(ForumCategory.is_active.is_(True))
            .order_by(ForumCategory.display_order, ForumCategory.name)
        )
        return list(result.scalars().all())

    async def get_by_slug(self, slug: str) -> Optional[ForumCategory]:
        result = await self.db.execute(select(ForumCategory).where(ForumCategory.slug == slug))
        return result.scalar_one_or_none()

    async def existing_slugs(self, slugs: Iterable[str]) -> Dict[str, ForumCategory]:
        slugs = list(slugs)
        if not slugs:
            return {}
        result = await self.db.execute(select(ForumCategory).where(ForumCategory.slug.in_(slugs)))
        return {category.slug: category for category in result.scalars().all()}

    async def post_counts(self) -> Dict[uuid.UUID, int]:
        result = await self.db.execute(
            select(ForumPost.category_id, func.count(ForumPost.id)).group_by(ForumPost.category_id)
        )
        return {category_id: count for category_id, count in result.all()}

    async def search(
        self,
        term: str,
        city: Optional[str] = None,
        limit: int = 5
    ) -> List[ForumCategory]:
        pattern = f"%{term.lower()}%"
        query = select(ForumCategory).where(
            ForumCategory.is_active.is_(True),
            or_(
                func.lower(ForumCategory.name).like(pattern),
                func.lower(ForumCategory.description).like(pattern),
            ),
        )
        if city:
            query = query.where(func.lower(ForumCategory.city) == city.lower())
        result = await self.db.execute(query.order_by(ForumCategory.display_order).limit(limit))
        return list(result.scalars().all())


class ForumPostRepository(BaseRepository[ForumPost]):

    def __init__(self, db: AsyncSession):
        super().__init__(ForumPost, db)

    async def get_by_slug(self, slug: str) -> Optional[ForumPost]:
        result = await self.db.execute(select(ForumPost).where(ForumPost.slug == slug))
        return result.scalar_one_or_none()

    async def slugs_with_prefix(self, base_slug: str) -> List[str]:
        result = await self.db.execute(
            select(ForumPost.slug).where(
                or_(ForumPost.slug == base_slug, ForumPost.slug.like(f"{base_slug}-%"))
            )
        )
        return list(result.scalars().all())

    async def list_posts(
        self,
        category_ids: Optional[List[uuid.UUID]],
        skip: int,
        limit: int,
        author_id: Optional[uuid.UUID] = None
    ) -> Tuple[List[ForumPost], int]:
        """Sticky first, then latest reply, then newest."""
        try:
            conditions = []
            if category_ids is not None:
                conditions.append(ForumPost.category_id.in_(category_ids))
            if author_id is not None:
                conditions.append(ForumPost.author_id == author_id)

            total = (
                await self.db.execute(select(func.count(ForumPost.id)).where(*conditions))
            ).scalar() or 0
            result = await self.db.execute(
                select(ForumPost)
                .where(*conditions)
                .order_by(
                    ForumPost.is_sticky.desc(),
                    ForumPost.last_reply_at.desc().nulls_last(),
                    ForumPost.created_at.desc(),
                )
                .offset(skip)
                .limit(limit)
            )
            return list(result.scalars().all()), total
        except Exception as e:
            logger.error(f"Failed to list forum posts: {e}")
            raise

    async def search_posts(self, term: str, category_ids: Optional[List[uuid.UUID]]) -> List[ForumPost]:
        pattern = f"%{term.lower()}%"
        query = select(ForumPost).where(
            or_(func.lower(ForumPost.title).like(pattern), func.lower(ForumPost.content).like(pattern))
        )
        if category_ids is not None:
            query = query.where(ForumPost.category_id.in_(category_ids))
        result = await self.db.execute(query.order_by(ForumPost.created_at.desc()))
        return list(result.scalars().all())

    async def search_by_reply(self, term: str, category_ids: Optional[List[uuid.UUID]]) -> List[ForumPost]:
        """Posts that have at least one reply containing the term."""
        pattern = f"%{term.lower()}%"
        matching = select(ForumReply.post_id).where(func.lower(ForumReply.content).like(pattern))
        query = select(ForumPost).where(ForumPost.id.in_(matching))
        if category_ids is not None:
            query = query.where(ForumPost.category_id.in_(category_ids))
        result = await self.db.execute(query.order_by(ForumPost.created_at.desc()))
        return list(result.scalars().all())

    async def reaction_counts(self, post_ids: List[uuid.UUID]) -> Dict[uuid.UUID, Dict[str, int]]:
        if not post_ids:
            return {}
        result = await self.db.execute(
            select(PostReaction.post_id, PostReaction.type, func.count(PostReaction.id))
            .where(PostReaction.post_id.in_(post_ids))
            .group_by(PostReaction.post_id, PostReaction.type)
        )
        counts: Dict[uuid.UUID, Dict[str, int]] = {}
        for post_id, reaction_type, count in result.all():
            counts.setdefault(post_id, {})[reaction_type.value] = count
        return counts

    async def count_by_author(self, author_id: uuid.UUID) -> int:
        return await self.count({"author_id": author_id})


class ForumReplyRepository(BaseRepository[ForumReply]):

    def __init__(self, db: AsyncSession):
        super().__init__(ForumReply, db)

    async def list_for_post(self, post_id: uuid.UUID) -> List[ForumReply]:
        result = await self.db.execute(
            select(ForumReply).where(ForumReply.post_id == post_id).order_by(ForumReply.created_at.asc())
        )
        return list(result.scalars().all())

    async def reaction_counts(self, reply_ids: List[uuid.UUID]) -> Dict[uuid.UUID, Dict[str, int]]:
        if not reply_ids:
            return {}
        result = await self.db.execute(
            select(ReplyReaction.reply_id, ReplyReaction.type, func.count(ReplyReaction.id))
            .where(ReplyReaction.reply_id.in_(reply_ids))
            .group_by(ReplyReaction.reply_id, ReplyReaction.type)
        )
        counts: Dict[uuid.UUID, Dict[str, int]] = {}
        for reply_id, reaction_type, count in result.all():
            counts.setdefault(reply_id, {})[reaction_type.value] = count
        return counts

    async def count_by_author(self, author_id: uuid.UUID) -> int:
        return await self.count({"author_id": author_id})


class ReactionRepository:
    """Toggle and tally reactions on posts and replies."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def toggle(self, model, target_field: str, target_id: uuid.UUID,
                     user_id: uuid.UUID, reaction_type: ReactionType) -> bool:
        """Add the reaction if missing, remove it otherwise. Returns True when added."""
        target_column = getattr(model, target_field)
        try:
            existing = (
                await self.db.execute(
                    select(model).where(
                        target_column == target_id,
                        model.user_id == user_id,
                        model.type == reaction_type,
                    )
                )
            ).scalar_one_or_none()

            if existing:
                await self.db.execute(delete(model).where(model.id == existing.id))
                await self.db.commit()
                return False

            self.db.add(model(**{target_field: target_id, "user_id": user_id, "type": reaction_type}))
            await self.db.commit()
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to toggle {model.__name__} for {target_id}: {e}")
            raise

    async def received_by_type(self, author_id: uuid.UUID) -> Dict[str, int]:
        """Reactions on the author's posts and replies, by type."""
        totals: Dict[str, int] = {}
        post_rows = await self.db.execute(
            select(PostReaction.type, func.count(PostReaction.id))
            .join(ForumPost, PostReaction.post_id == ForumPost.id)
            .where(ForumPost.author_id == author_id)
            .group_by(PostReaction.type)
        )
        reply_rows = await self.db.execute(
            select(ReplyReaction.type, func.count(ReplyReaction.id))
            .join(ForumReply, ReplyReaction.reply_id == ForumReply.id)
            .where(ForumReply.author_id == author_id)
            .group_by(ReplyReaction.type)
        )
        for reaction_type, count in list(post_rows.all()) + list(reply_rows.all()):
            totals[reaction_type.value] = totals.get(reaction_type.value, 0) + count
        return totals

    async def given_by_type(self, user_id: uuid.UUID) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for model in (PostReaction, ReplyReaction):
            rows = await self.db.execute(
                select(model.type, func.count(model.id)).where(model.user_id == user_id).group_by(model.type)
            )
            for reaction_type, count in rows.all():
                totals[reaction_type.value] = totals.get(reaction_type.value, 0) + count
        return totals
