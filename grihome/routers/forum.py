"""
Discussion forum endpoints: category tree, posts, threaded replies, reactions and search.
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from typing import Optional
from grihome.models.user import User
from grihome.services.forum import ForumService, SEARCH_TYPES
from grihome.schemas.common import PageMeta, page_offset
from grihome.schemas.forum import (
    CategoryResponse,
    CategoryTreeResponse,
    CategoryDetailResponse,
    InitCitiesResponse,
    PostCreate,
    PostResponse,
    PostListResponse,
    PostDetailResponse,
    ReplyCreate,
    ReplyResponse,
    ReactionRequest,
    ReactionResponse,
    SearchResponse,
    UserStatsResponse,
)
from grihome.utils.dependencies import get_forum_service, get_current_verified_user, get_client_ip
from grihome.utils.rate_limit import limiter
import uuid

router = APIRouter(prefix="/forum", tags=["Forum"])

MAX_FORUM_PAGE_SIZE = 50


@router.get("/categories", response_model=CategoryTreeResponse, summary="Category tree")
async def list_categories(forum_service: ForumService = Depends(get_forum_service)) -> CategoryTreeResponse:
    """Active categories three levels deep, each with its post count."""
    tree = await forum_service.category_tree()
    return CategoryTreeResponse(categories=[CategoryResponse.model_validate(node) for node in tree])


@router.get("/categories/{slug}", response_model=CategoryDetailResponse, summary="Category with breadcrumbs")
async def get_category(
    slug: str,
    forum_service: ForumService = Depends(get_forum_service)
) -> CategoryDetailResponse:
    return CategoryDetailResponse.model_validate(await forum_service.get_category(slug))


@router.post(
    "/init-cities",
    response_model=InitCitiesResponse,
    summary="Create city categories",
    description="Adds every supported city under General Discussions with its property-type sections"
)
async def init_cities(forum_service: ForumService = Depends(get_forum_service)) -> InitCitiesResponse:
    added = await forum_service.init_cities()
    message = f"Added {len(added)} cities" if added else "All cities already initialized"
    return InitCitiesResponse(message=message, cities_added=len(added), cities=added)


@router.get("/posts", response_model=PostListResponse, summary="List posts")
async def list_posts(
    category_id: Optional[uuid.UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_FORUM_PAGE_SIZE),
    forum_service: ForumService = Depends(get_forum_service)
) -> PostListResponse:
    """Sticky posts first, then newest."""
    items, total = await forum_service.list_posts(category_id, page_offset(page, limit), limit)
    return PostListResponse(
        posts=[PostResponse.model_validate(item) for item in items],
        pagination=PageMeta.build(total, page, limit),
    )


@router.post(
    "/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a discussion"
)
async def create_post(
    data: PostCreate,
    current_user: User = Depends(get_current_verified_user),
    forum_service: ForumService = Depends(get_forum_service)
) -> PostResponse:
    """
    Raises:
        NotFoundError: Category missing or inactive
        RateLimitExceededError: Posting too fast
    """
    post = await forum_service.create_post(data, current_user)
    return PostResponse.model_validate(post.to_dict())


@router.get("/posts/{slug}", response_model=PostDetailResponse, summary="Post with its replies")
async def get_post(
    slug: str,
    forum_service: ForumService = Depends(get_forum_service)
) -> PostDetailResponse:
    return PostDetailResponse.model_validate(await forum_service.get_post(slug))


@router.post(
    "/replies",
    response_model=ReplyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to a post"
)
async def create_reply(
    data: ReplyCreate,
    current_user: User = Depends(get_current_verified_user),
    forum_service: ForumService = Depends(get_forum_service)
) -> ReplyResponse:
    """
    Raises:
        NotFoundError: Post or parent reply missing
        PostLockedError: Post is locked
    """
    reply = await forum_service.create_reply(data, current_user)
    return ReplyResponse.model_validate(reply.to_dict())


async def _react(
    target: str,
    data: ReactionRequest,
    response: Response,
    current_user: User,
    forum_service: ForumService
) -> ReactionResponse:
    added, counts = await forum_service.toggle_reaction(target, data.target_id, data.type, current_user)
    response.status_code = status.HTTP_201_CREATED if added else status.HTTP_200_OK
    return ReactionResponse(action="added" if added else "removed", type=data.type, counts=counts)


@router.post(
    "/reactions/posts",
    response_model=ReactionResponse,
    summary="Toggle a reaction on a post",
    description="201 when the reaction is added, 200 when an existing one is removed"
)
async def react_to_post(
    data: ReactionRequest,
    response: Response,
    current_user: User = Depends(get_current_verified_user),
    forum_service: ForumService = Depends(get_forum_service)
) -> ReactionResponse:
    return await _react("post", data, response, current_user, forum_service)


@router.post(
    "/reactions/replies",
    response_model=ReactionResponse,
    summary="Toggle a reaction on a reply"
)
async def react_to_reply(
    data: ReactionRequest,
    response: Response,
    current_user: User = Depends(get_current_verified_user),
    forum_service: ForumService = Depends(get_forum_service)
) -> ReactionResponse:
    return await _react("reply", data, response, current_user, forum_service)


@router.get("/search", response_model=SearchResponse, summary="Search posts, replies and categories")
async def search(
    request: Request,
    q: str = Query(..., max_length=100),
    type: str = Query("all", description=f"One of: {', '.join(SEARCH_TYPES)}"),
    city: Optional[str] = Query(None, max_length=100),
    property_type: Optional[str] = Query(None, max_length=50),
    category_id: Optional[uuid.UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_FORUM_PAGE_SIZE),
    forum_service: ForumService = Depends(get_forum_service)
) -> SearchResponse:
    """
    Raises:
        BadRequestError: Query shorter than two characters or unknown type
        RateLimitExceededError: Too many searches
    """
    limiter.hit_action("search", get_client_ip(request))
    result = await forum_service.search(
        q,
        search_type=type,
        city=city,
        property_type=property_type,
        category_id=category_id,
        skip=page_offset(page, limit),
        limit=limit,
    )
    return SearchResponse(**result, pagination=PageMeta.build(result["total_results"], page, limit))


@router.get("/users/{user_id}/posts", response_model=PostListResponse, summary="Posts by a user")
async def user_posts(
    user_id: uuid.UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_FORUM_PAGE_SIZE),
    forum_service: ForumService = Depends(get_forum_service)
) -> PostListResponse:
    items, total = await forum_service.user_posts(user_id, page_offset(page, limit), limit)
    return PostListResponse(
        posts=[PostResponse.model_validate(item) for item in items],
        pagination=PageMeta.build(total, page, limit),
    )


@router.get("/users/{user_id}/stats", response_model=UserStatsResponse, summary="Forum activity of a user")
async def user_stats(
    user_id: uuid.UUID,
    forum_service: ForumService = Depends(get_forum_service)
) -> UserStatsResponse:
    return UserStatsResponse(**await forum_service.user_stats(user_id))
