"""API routes for tenant content and its public reads."""

from fastapi import APIRouter, Body, Depends, status

from apps.activity.tracker import ActivityTracker
from apps.base.schemas import CountResponse, UserProfile
from apps.notifications.dispatch import NotificationDispatcher
from server.dependencies import (
    filter_query,
    get_activity_tracker,
    get_current_user,
    get_dispatcher,
    get_repositories,
    where_query,
)

from .crud import add_crud_routes
from .models import AppData, AppInfo, AppMember
from .repositories import TenantRepositories
from .schemas import VersionRequest
from .services import (
    create_app_data,
    find_app_data,
    find_public_app_data,
    find_public_members,
    get_public_app_data,
    get_public_member,
    publish_app_info,
    revert_app_info,
)

router = APIRouter(
    prefix="/app-data",
    tags=["app-data"],
    dependencies=[Depends(get_current_user)],
)


@router.post("")
async def create(
    data: AppData,
    user: UserProfile = Depends(get_current_user),
    repositories: TenantRepositories = Depends(get_repositories),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> AppData:
    """Create a content item and notify members in the background."""

    return await create_app_data(repositories, dispatcher, data, user)


@router.get("/count")
async def count(
    where: dict | None = Depends(where_query),
    repositories: TenantRepositories = Depends(get_repositories),
) -> CountResponse:
    """Count content items."""

    return CountResponse(**await repositories.app_data.count(where))


@router.get("")
async def find(
    filter: dict | None = Depends(filter_query),  # noqa: A002
    user: UserProfile = Depends(get_current_user),
    repositories: TenantRepositories = Depends(get_repositories),
    tracker: ActivityTracker = Depends(get_activity_tracker),
) -> list[AppData]:
    """Find content items; reading the post feed marks it as seen."""

    return await find_app_data(repositories, tracker, filter, user)


@router.patch("")
async def update_all(
    data: dict[str, object] = Body(...),
    where: dict | None = Depends(where_query),
    repositories: TenantRepositories = Depends(get_repositories),
) -> CountResponse:
    """Partially update every matching item."""

    return CountResponse(**await repositories.app_data.update_all(data, where))


@router.get("/{item_id}")
async def find_by_id(
    item_id: str,
    filter: dict | None = Depends(filter_query),  # noqa: A002
    repositories: TenantRepositories = Depends(get_repositories),
) -> AppData:
    """Get a content item."""

    return await repositories.app_data.find_by_id(item_id, filter)


@router.patch("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_by_id(
    item_id: str,
    data: dict[str, object] = Body(...),
    repositories: TenantRepositories = Depends(get_repositories),
) -> None:
    """Partially update a content item."""

    await repositories.app_data.update_by_id(item_id, data)


@router.put("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def replace_by_id(
    item_id: str,
    data: AppData,
    repositories: TenantRepositories = Depends(get_repositories),
) -> None:
    """Replace a content item."""

    await repositories.app_data.replace_by_id(item_id, data)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_by_id(
    item_id: str,
    repositories: TenantRepositories = Depends(get_repositories),
) -> None:
    """Delete a content item."""

    await repositories.app_data.delete_by_id(item_id)


member_router = add_crud_routes(
    APIRouter(
        prefix="/app-member",
        tags=["app-member"],
        dependencies=[Depends(get_current_user)],
    ),
    AppMember,
    lambda repositories: repositories.app_members,
)


info_router = APIRouter(
    prefix="/app-info",
    tags=["app-info"],
    dependencies=[Depends(get_current_user)],
)


@info_router.post("/publish")
async def publish(
    payload: VersionRequest,
    repositories: TenantRepositories = Depends(get_repositories),
) -> CountResponse:
    """Publish a site configuration version."""

    return CountResponse(count=await publish_app_info(repositories, payload.name))


@info_router.post("/revert")
async def revert(
    payload: VersionRequest,
    repositories: TenantRepositories = Depends(get_repositories),
) -> CountResponse:
    """Publish the previous site configuration version again."""

    return CountResponse(count=await revert_app_info(repositories, payload.name))


add_crud_routes(info_router, AppInfo, lambda repositories: repositories.app_info)


public_router = APIRouter(prefix="/public", tags=["public"])


@public_router.get("/app-data")
async def find_public_items(
    filter: dict | None = Depends(filter_query),  # noqa: A002
    repositories: TenantRepositories = Depends(get_repositories),
) -> list[AppData]:
    """Find public content items."""

    return await find_public_app_data(repositories, filter)


@public_router.get("/app-data/{item_id}")
async def get_public_item(
    item_id: str,
    filter: dict | None = Depends(filter_query),  # noqa: A002
    repositories: TenantRepositories = Depends(get_repositories),
) -> AppData:
    """Get a public content item."""

    return await get_public_app_data(repositories, item_id, filter)


@public_router.get("/app-member")
async def find_public_profiles(
    filter: dict | None = Depends(filter_query),  # noqa: A002
    repositories: TenantRepositories = Depends(get_repositories),
) -> list[AppMember]:
    """Find member profiles, without credentials or push registration."""

    return await find_public_members(repositories, filter)


@public_router.get("/app-member/{user_name}")
async def get_public_profile(
    user_name: str,
    filter: dict | None = Depends(filter_query),  # noqa: A002
    repositories: TenantRepositories = Depends(get_repositories),
) -> AppMember:
    """Get a member profile, without credentials or push registration."""

    return await get_public_member(repositories, user_name, filter)
