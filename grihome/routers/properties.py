"""
Property listing endpoints: CRUD, lifecycle transitions, favourites and search.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from typing import Optional, List
from grihome.config import settings
from grihome.models.property import Property, PropertyType, ListingType
from grihome.models.user import User
from grihome.repositories.property import PropertySearchFilters, SORT_OPTIONS
from grihome.services.property import PropertyService
from grihome.schemas.common import PageMeta, page_offset
from grihome.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    MarkSoldRequest,
    ToggleFavoriteRequest,
    ToggleFavoriteResponse,
    FavoritesResponse,
)
from grihome.utils.dependencies import (
    get_property_service,
    get_current_active_user,
    get_current_verified_user,
    get_optional_current_user,
)
from grihome.utils.exceptions import ValidationError
import uuid

router = APIRouter(prefix="/properties", tags=["Properties"])


def _to_response(property_obj: Property, favorite_ids: Optional[set] = None) -> PropertyResponse:
    data = property_obj.to_dict()
    data["is_favorited"] = property_obj.id in (favorite_ids or set())
    return PropertyResponse.model_validate(data)


async def _list_response(
    property_service: PropertyService,
    properties: List[Property],
    total: int,
    page: int,
    page_size: int,
    current_user: Optional[User]
) -> PropertyListResponse:
    favorite_ids = await property_service.favorite_ids(current_user)
    return PropertyListResponse(
        properties=[_to_response(p, favorite_ids) for p in properties],
        pagination=PageMeta.build(total, page, page_size),
    )


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create property listing",
    description="Sizes may be sent in sq_ft, sq_m or sq_yd and are stored in square feet"
)
async def create_property(
    property_data: PropertyCreate,
    current_user: User = Depends(get_current_verified_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Raises:
        VerificationRequiredError: Caller has not verified email or mobile
        RateLimitExceededError: Too many listings created in a short window
        NotFoundError: Referenced project does not exist
    """
    property_obj = await property_service.create_property(property_data, current_user)
    return _to_response(property_obj)


@router.get(
    "",
    response_model=PropertyListResponse,
    summary="List active properties",
    description="Filter and paginate ACTIVE listings"
)
async def list_properties(
    property_type: Optional[PropertyType] = Query(None),
    listing_type: Optional[ListingType] = Query(None),
    city: Optional[str] = Query(None, max_length=100),
    state: Optional[str] = Query(None, max_length=100),
    project_id: Optional[uuid.UUID] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    bedrooms: Optional[int] = Query(None, ge=0, le=50, description="Minimum bedrooms"),
    sort: str = Query("newest", description="newest, oldest, price_asc or price_desc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: Optional[User] = Depends(get_optional_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    """
    Raises:
        ValidationError: min_price above max_price or unknown sort
    """
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationError(
            "Invalid price range",
            [{"field": "min_price", "message": "min_price cannot be greater than max_price"}]
        )
    if sort not in SORT_OPTIONS:
        raise ValidationError(
            "Invalid sort option",
            [{"field": "sort", "message": f"sort must be one of: {', '.join(SORT_OPTIONS)}"}]
        )

    filters = PropertySearchFilters(
        property_type=property_type,
        listing_type=listing_type,
        city=city,
        state=state,
        project_id=project_id,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
        sort=sort,
        skip=page_offset(page, page_size),
        limit=page_size,
    )
    properties, total = await property_service.search_properties(filters)
    return await _list_response(property_service, properties, total, page, page_size, current_user)


@router.get("/search", response_model=PropertyListResponse, summary="Search active properties by text")
async def search_properties(
    q: str = Query(..., min_length=1, max_length=100, description="Text in title, description or place"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: Optional[User] = Depends(get_optional_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    filters = PropertySearchFilters(query=q, skip=page_offset(page, page_size), limit=page_size)
    properties, total = await property_service.search_properties(filters)
    return await _list_response(property_service, properties, total, page, page_size, current_user)


@router.get("/favorites", response_model=FavoritesResponse, summary="Saved properties")
async def list_favorites(
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> FavoritesResponse:
    properties = await property_service.list_favorites(current_user)
    ids = {p.id for p in properties}
    return FavoritesResponse(properties=[_to_response(p, ids) for p in properties], total=len(properties))


@router.post(
    "/toggle-favorite",
    response_model=ToggleFavoriteResponse,
    summary="Save or unsave a property"
)
async def toggle_favorite(
    data: ToggleFavoriteRequest,
    current_user: User = Depends(get_current_verified_user),
    property_service: PropertyService = Depends(get_property_service)
) -> ToggleFavoriteResponse:
    """
    Raises:
        ForbiddenError: The property is the caller's own
    """
    is_favorited = await property_service.toggle_favorite(data.property_id, current_user)
    return ToggleFavoriteResponse(
        property_id=str(data.property_id),
        is_favorited=is_favorited,
        message="Added to favorites" if is_favorited else "Removed from favorites",
    )


@router.get("/{property_id}", response_model=PropertyResponse, summary="Get property")
async def get_property(
    property_id: uuid.UUID,
    current_user: Optional[User] = Depends(get_optional_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """Listings that are not ACTIVE are visible to their owner only."""
    property_obj = await property_service.get_property(property_id, current_user)
    return _to_response(property_obj, await property_service.favorite_ids(current_user))


@router.put("/{property_id}", response_model=PropertyResponse, summary="Update property (owner)")
async def update_property(
    property_id: uuid.UUID,
    property_data: PropertyUpdate,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.update_property(property_id, property_data, current_user)
    return _to_response(property_obj)


@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete property (owner)"
)
async def delete_property(
    property_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> Response:
    await property_service.delete_property(property_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{property_id}/mark-sold", response_model=PropertyResponse, summary="Mark as sold")
async def mark_sold(
    property_id: uuid.UUID,
    data: Optional[MarkSoldRequest] = None,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.mark_sold(property_id, data.sold_to if data else None, current_user)
    return _to_response(property_obj)


@router.post("/{property_id}/archive", response_model=PropertyResponse, summary="Archive listing")
async def archive_property(
    property_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.archive(property_id, current_user)
    return _to_response(property_obj)


@router.post("/{property_id}/reactivate", response_model=PropertyResponse, summary="Make listing active again")
async def reactivate_property(
    property_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.reactivate(property_id, current_user)
    return _to_response(property_obj)
