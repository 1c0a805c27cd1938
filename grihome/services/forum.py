"""
Forum service: category tree, posts with threaded replies, reactions and search.
"""

from typing import Optional, List, Dict, Any, Tuple, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.models.forum import ForumCategory, ForumPost, ForumReply, PostReaction, ReplyReaction, ReactionType
from grihome.models.user import User
from grihome.repositories.forum import (
    ForumCategoryRepository,
    ForumPostRepository,
    ForumReplyRepository,
    ReactionRepository,
)
from grihome.repositories.user import UserRepository
from grihome.schemas.forum import PostCreate, ReplyCreate
from grihome.utils.exceptions import NotFoundError, BadRequestError, PostLockedError
from grihome.utils.rate_limit import limiter
from grihome.utils.time import utc_now, as_utc
from grihome.utils.validators import slugify
from datetime import datetime, timezone
import uuid
import logging

logger = logging.getLogger(__name__)

GENERAL_DISCUSSIONS = {
    "name": "General Discussions",
    "slug": "general-discussions",
    "description": "Discuss real estate topics across Indian cities",
    "display_order": 3,
}

FORUM_CITIES = (
    "Hyderabad",
    "Chennai",
    "Bengaluru",
    "Mumbai",
    "Delhi",
    "Kolkata",
    "Gurgaon",
    "Noida",
    "Pune",
    "Other Cities",
)

# (display name, property type)
FORUM_PROPERTY_TYPES = (
    ("Villas", "VILLAS"),
    ("Apartments", "APARTMENTS"),
    ("Residential Lands", "RESIDENTIAL_LANDS"),
    ("Agriculture Lands", "AGRICULTURE_LANDS"),
    ("Commercial Properties", "COMMERCIAL_PROPERTIES"),
)

SEARCH_TYPES = ("all", "posts", "categories")
MIN_SEARCH_LENGTH = 2
MAX_CATEGORY_RESULTS = 5
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def unique_slug(title: str, taken: Iterable[str]) -> str:
    """Slug for a title that does not collide with any taken slug: base, base-1, base-2, ..."""
    base = slugify(title) or "post"
    taken = set(taken)
    candidate = base
    counter = 1
    while candidate in taken:
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


def city_category_blueprints() -> List[Dict[str, Any]]:
    """City categories with their property-type children, in display order."""
    blueprints = []
    for order, name in enumerate(FORUM_CITIES):
        city_slug = slugify(name)
        blueprints.append({
            "name": name,
            "slug": city_slug,
            "city": city_slug,
            "description": f"{name} Real Estate Discussions",
            "display_order": order,
            "children": [
                {
                    "name": f"{type_name} in {name}",
                    "slug": f"{city_slug}-{slugify(type_name)}",
                    "city": city_slug,
                    "property_type": type_value,
                    "description": f"Discuss {type_name.lower()} in {name}",
                    "display_order": type_order,
                }
                for type_order, (type_name, type_value) in enumerate(FORUM_PROPERTY_TYPES)
            ],
        })
    return blueprints


def build_reply_tree(replies: List[ForumReply], reactions: Dict[uuid.UUID, Dict[str, int]]) -> List[Dict[str, Any]]:
    """Nest replies under their parents. Replies whose parent is missing stay top level."""
    nodes = {}
    for reply in replies:
        node = reply.to_dict()
        node["reactions"] = reactions.get(reply.id, {})
        node["children"] = []
        nodes[reply.id] = node

    roots = []
    for reply in replies:
        node = nodes[reply.id]
        parent = nodes.get(reply.parent_id) if reply.parent_id else None
        if parent is not None:
            parent["children"].append(node)
        else:
            roots.append(node)
    return roots


class ForumService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.category_repo = ForumCategoryRepository(db_session)
        self.post_repo = ForumPostRepository(db_session)
        self.reply_repo = ForumReplyRepository(db_session)
        self.reaction_repo = ReactionRepository(db_session)
        self.user_repo = UserRepository(db_session)

    # Categories

    async def category_tree(self) -> List[Dict[str, Any]]:
        """Active roots with active children and grandchildren, each with its post count."""
        categories = await self.category_repo.list_active()
        counts = await self.category_repo.post_counts()

        by_parent: Dict[Optional[uuid.UUID], List[ForumCategory]] = {}
        for category in categories:
            by_parent.setdefault(category.parent_id, []).append(category)

        def node(category: ForumCategory, depth: int) -> Dict[str, Any]:
            item = {**category.to_dict(), "post_count": counts.get(category.id, 0), "children": []}
            if depth < 2:
                item["children"] = [node(child, depth + 1) for child in by_parent.get(category.id, [])]
            return item

        return [node(root, 0) for root in by_parent.get(None, [])]

    async def _breadcrumbs(self, category: ForumCategory) -> List[Dict[str, str]]:
        trail = [{"name": category.name, "slug": category.slug}]
        parent_id = category.parent_id
        seen = {category.id}
        while parent_id is not None and parent_id not in seen:
            parent = await self.category_repo.get_by_id(parent_id)
            if parent is None:
                break
            seen.add(parent.id)
            trail.insert(0, {"name": parent.name, "slug": parent.slug})
            parent_id = parent.parent_id
        return trail

    async def get_category(self, slug: str) -> Dict[str, Any]:
        category = await self.category_repo.get_by_slug(slug)
        if category is None or not category.is_active:
            raise NotFoundError("Category", slug)

        categories = await self.category_repo.list_active()
        counts = await self.category_repo.post_counts()
        children = [
            {**c.to_dict(), "post_count": counts.get(c.id, 0), "children": []}
            for c in categories if c.parent_id == category.id
        ]
        return {
            **category.to_dict(),
            "post_count": counts.get(category.id, 0),
            "children": children,
            "breadcrumbs": await self._breadcrumbs(category),
        }

    async def init_cities(self) -> List[str]:
        """
        Make sure General Discussions holds every city and each city its five
        property-type sections. Safe to call repeatedly. Returns the cities added.
        """
        general = await self.category_repo.get_by_slug(GENERAL_DISCUSSIONS["slug"])
        if general is None:
            general = await self.category_repo.create({**GENERAL_DISCUSSIONS, "is_active": True}, commit=False)

        blueprints = city_category_blueprints()
        wanted = [blueprint["slug"] for blueprint in blueprints] + [c["slug"] for blueprint in blueprints for c in blueprint["children"]]
        existing = await self.category_repo.existing_slugs(wanted)

        added = []
        for blueprint in blueprints:
            city = existing.get(blueprint["slug"])
            if city is None:
                city = await self.category_repo.create(
                    {
                        "name": blueprint["name"],
                        "slug": blueprint["slug"],
                        "city": blueprint["city"],
                        "description": blueprint["description"],
                        "display_order": blueprint["display_order"],
                        "parent_id": general.id,
                        "is_active": True,
                    },
                    commit=False
                )
                added.append(blueprint["name"])

            missing = [c for c in blueprint["children"] if c["slug"] not in existing]
            if missing:
                await self.category_repo.bulk_create(
                    [{**child, "parent_id": city.id, "is_active": True} for child in missing],
                    commit=False
                )

        await self.category_repo.commit()
        if added:
            logger.info(f"Forum cities initialized: {', '.join(added)}")
        return added

    async def _category_ids_for(
        self,
        category_id: Optional[uuid.UUID] = None,
        city: Optional[str] = None,
        property_type: Optional[str] = None
    ) -> Optional[List[uuid.UUID]]:
        """Category filter for post queries. None means every category."""
        if category_id is not None:
            return [category_id]
        if not city:
            return None
        city_key = city.strip().lower()
        categories = await self.category_repo.list_active()
        return [
            c.id for c in categories
            if (c.city or "").lower() == city_key
            and (not property_type or c.property_type == property_type)
        ]

    # Posts

    async def _with_reactions(self, posts: List[ForumPost]) -> List[Dict[str, Any]]:
        counts = await self.post_repo.reaction_counts([p.id for p in posts])
        items = []
        for post in posts:
            reactions = counts.get(post.id, {})
            items.append({**post.to_dict(), "reactions": reactions, "reaction_count": sum(reactions.values())})
        return items

    async def list_posts(
        self,
        category_id: Optional[uuid.UUID],
        skip: int,
        limit: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        category_ids = [category_id] if category_id else None
        posts, total = await self.post_repo.list_posts(category_ids, skip, limit)
        return await self._with_reactions(posts), total

    async def create_post(self, data: PostCreate, current_user: User) -> ForumPost:
        """
        Raises:
            RateLimitExceededError: Posting too fast
            NotFoundError: Category missing or inactive
        """
        limiter.hit_action("forum_post", str(current_user.id))

        category = await self.category_repo.get_by_id(data.category_id)
        if category is None or not category.is_active:
            raise NotFoundError("Category", str(data.category_id))

        taken = await self.post_repo.slugs_with_prefix(slugify(data.title) or "post")
        post = await self.post_repo.create({
            "title": data.title,
            "content": data.content,
            "slug": unique_slug(data.title, taken),
            "category_id": category.id,
            "author_id": current_user.id,
        })
        logger.info(f"Forum post created by {current_user.id}: {post.slug}")
        return post

    async def get_post(self, slug: str) -> Dict[str, Any]:
        """Post with its reply tree. Each read counts as a view."""
        post = await self.post_repo.get_by_slug(slug)
        if post is None:
            raise NotFoundError("Post", slug)

        post = await self.post_repo.update(post, {"view_count": (post.view_count or 0) + 1})

        replies = await self.reply_repo.list_for_post(post.id)
        reply_reactions = await self.reply_repo.reaction_counts([r.id for r in replies])

        item = (await self._with_reactions([post]))[0]
        item["replies"] = build_reply_tree(replies, reply_reactions)
        item["breadcrumbs"] = await self._breadcrumbs(post.category) if post.category else []
        return item

    async def create_reply(self, data: ReplyCreate, current_user: User) -> ForumReply:
        """
        Add a reply and bump the post's reply counters in the same transaction.

        Raises:
            NotFoundError: Post or parent reply missing
            PostLockedError: Post no longer accepts replies
        """
        limiter.hit_action("forum_reply", str(current_user.id))

        post = await self.post_repo.get_by_id(data.post_id)
        if post is None:
            raise NotFoundError("Post", str(data.post_id))
        if post.is_locked:
            raise PostLockedError()

        if data.parent_id is not None:
            parent = await self.reply_repo.get_by_id(data.parent_id)
            if parent is None or parent.post_id != post.id:
                raise NotFoundError("Parent reply", str(data.parent_id))

        now = utc_now()
        reply = await self.reply_repo.create(
            {
                "content": data.content,
                "post_id": post.id,
                "author_id": current_user.id,
                "parent_id": data.parent_id,
            },
            commit=False
        )
        await self.post_repo.update(
            post,
            {
                "reply_count": (post.reply_count or 0) + 1,
                "last_reply_at": now,
                "last_reply_by": current_user.id,
            },
            commit=False
        )
        await self.reply_repo.commit()
        await self.db.refresh(reply)

        logger.info(f"Reply {reply.id} added to post {post.slug} by {current_user.id}")
        return reply

    async def toggle_reaction(
        self,
        target: str,
        target_id: uuid.UUID,
        reaction_type: ReactionType,
        current_user: User
    ) -> Tuple[bool, Dict[str, int]]:
        """
        Toggle a reaction on a post or reply.

        Returns:
            Whether the reaction was added, and the target's counts afterwards
        """
        limiter.hit_action("forum_reaction", str(current_user.id))

        if target == "post":
            if not await self.post_repo.exists(target_id):
                raise NotFoundError("Post", str(target_id))
            added = await self.reaction_repo.toggle(PostReaction, "post_id", target_id, current_user.id, reaction_type)
            counts = await self.post_repo.reaction_counts([target_id])
        else:
            if not await self.reply_repo.exists(target_id):
                raise NotFoundError("Reply", str(target_id))
            added = await self.reaction_repo.toggle(ReplyReaction, "reply_id", target_id, current_user.id, reaction_type)
            counts = await self.reply_repo.reaction_counts([target_id])

        logger.debug(f"User {current_user.id} {'added' if added else 'removed'} {reaction_type.value} on {target} {target_id}")
        return added, counts.get(target_id, {})

    # Search

    async def search(
        self,
        query: str,
        search_type: str = "all",
        city: Optional[str] = None,
        property_type: Optional[str] = None,
        category_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Dict[str, Any]:
        """
        Posts matching in title or content, plus posts with a matching reply,
        de-duplicated and newest first. Up to five matching categories.

        Raises:
            BadRequestError: Query shorter than two characters or unknown type
        """
        term = (query or "").strip()
        if len(term) < MIN_SEARCH_LENGTH:
            raise BadRequestError(f"Query must be at least {MIN_SEARCH_LENGTH} characters")
        if search_type not in SEARCH_TYPES:
            raise BadRequestError(f"type must be one of: {', '.join(SEARCH_TYPES)}")

        result = {"query": term, "posts": [], "categories": [], "total_results": 0}

        if search_type in ("all", "posts"):
            category_ids = await self._category_ids_for(category_id, city, property_type)
            direct = await self.post_repo.search_posts(term, category_ids)
            via_reply = await self.post_repo.search_by_reply(term, category_ids)

            merged: Dict[uuid.UUID, Tuple[ForumPost, str]] = {}
            for post in direct:
                merged[post.id] = (post, "post")
            for post in via_reply:
                merged.setdefault(post.id, (post, "reply"))

            ordered = sorted(merged.values(), key=lambda pair: as_utc(pair[0].created_at) or _EPOCH, reverse=True)
            page = ordered[skip:skip + limit]
            items = await self._with_reactions([post for post, _ in page])
            for item, (_, match_type) in zip(items, page):
                item["match_type"] = match_type

            result["posts"] = items
            result["total_results"] = len(ordered)

        if search_type in ("all", "categories"):
            categories = await self.category_repo.search(term, city, MAX_CATEGORY_RESULTS)
            counts = await self.category_repo.post_counts()
            result["categories"] = [
                {**c.to_dict(), "post_count": counts.get(c.id, 0), "children": []} for c in categories
            ]

        return result

    # Users

    async def _require_user(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", str(user_id))
        return user

    async def user_posts(self, user_id: uuid.UUID, skip: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        await self._require_user(user_id)
        posts, total = await self.post_repo.list_posts(None, skip, limit, author_id=user_id)
        return await self._with_reactions(posts), total

    async def user_stats(self, user_id: uuid.UUID) -> Dict[str, Any]:
        await self._require_user(user_id)
        received = await self.reaction_repo.received_by_type(user_id)
        given = await self.reaction_repo.given_by_type(user_id)
        return {
            "user_id": str(user_id),
            "post_count": await self.post_repo.count_by_author(user_id),
            "reply_count": await self.reply_repo.count_by_author(user_id),
            "reactions_received": received,
            "reactions_given": given,
            "total_reactions_received": sum(received.values()),
            "total_reactions_given": sum(given.values()),
        }
