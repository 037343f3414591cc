"""Content rules applied around repository calls."""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime

from apps.activity.tracker import ActivityTracker
from apps.base.schemas import UserProfile
from apps.notifications.dispatch import LAST_SEEN_KIND, NotificationDispatcher
from db.exceptions import EntityNotFoundError
from db.utils import to_iso

from .exceptions import NoPreviousVersionError
from .models import AppData, AppMember
from .repositories import TenantRepositories

logger = logging.getLogger(__name__)

PUBLIC_ACCESS = "public"
# Push registration is never served to other visitors
PRIVATE_MEMBER_DATA = ("pushToken", "pushType")


def selects_posts(filter: Mapping[str, object] | None) -> bool:  # noqa: A002
    """Check whether a filter reads the post feed (`type` is `post`)."""
    where = (filter or {}).get("where")
    if not isinstance(where, Mapping):
        return False
    selected = where.get("type")
    if isinstance(selected, Mapping):
        return selected.get("eq") == "post"
    return selected == "post"


async def create_app_data(
    repositories: TenantRepositories,
    dispatcher: NotificationDispatcher,
    data: AppData,
    user: UserProfile,
) -> AppData:
    """
    Persist a content item, then submit its notifications.

    Args:
        repositories: Repositories of the caller's tenant
        dispatcher: Notification dispatcher
        data: Item to create
        user: Caller creating the item

    Returns:
        The stored item

    """
    now = datetime.now(UTC)
    if data.createdAt is None:
        data.createdAt = now
    if data.updatedAt is None:
        data.updatedAt = now
    if data.createdBy is None:
        data.createdBy = user.id

    stored = await repositories.app_data.create(data)
    dispatcher.submit(stored, user, repositories)
    return stored


async def find_app_data(
    repositories: TenantRepositories,
    tracker: ActivityTracker,
    filter: Mapping[str, object] | None,  # noqa: A002
    user: UserProfile,
) -> list[AppData]:
    """Find content items, recording a visit of the post feed."""
    if selects_posts(filter):
        tracker.set_activity(
            repositories.tenant_key,
            user,
            LAST_SEEN_KIND,
            to_iso(datetime.now(UTC)),
        )
    return await repositories.app_data.find(filter)


# Public reads


def public_filter(filter: Mapping[str, object] | None) -> dict[str, object]:  # noqa: A002
    """Restrict a filter to public items, overriding any `access` condition."""
    restricted = dict(filter or {})
    where = restricted.get("where")
    restricted["where"] = {
        **(where if isinstance(where, Mapping) else {}),
        "access": PUBLIC_ACCESS,
    }
    return restricted


def clean_public_member(member: AppMember) -> AppMember:
    """Copy of a member without its password and push registration."""
    member_data = member.memberData
    if member_data is not None:
        member_data = {
            key: value
            for key, value in member_data.items()
            if key not in PRIVATE_MEMBER_DATA
        }
    return member.model_copy(update={"password": None, "memberData": member_data})


async def find_public_app_data(
    repositories: TenantRepositories,
    filter: Mapping[str, object] | None = None,  # noqa: A002
) -> list[AppData]:
    return await repositories.app_data.find(public_filter(filter))


async def get_public_app_data(
    repositories: TenantRepositories,
    item_id: str,
    filter: Mapping[str, object] | None = None,  # noqa: A002
) -> AppData:
    """
    Get a public content item.

    Raises:
        EntityNotFoundError: If the item does not exist or is not public

    """
    restricted = public_filter(filter)
    restricted["where"]["name"] = item_id
    item = await repositories.app_data.find_one(restricted)
    if item is None:
        raise EntityNotFoundError(AppData.descriptor.type_name, item_id)
    return item


async def find_public_members(
    repositories: TenantRepositories,
    filter: Mapping[str, object] | None = None,  # noqa: A002
) -> list[AppMember]:
    members = await repositories.app_members.find(filter)
    return [clean_public_member(member) for member in members]


async def get_public_member(
    repositories: TenantRepositories,
    user_name: str,
    filter: Mapping[str, object] | None = None,  # noqa: A002
) -> AppMember:
    member = await repositories.app_members.find_by_id(user_name, filter)
    return clean_public_member(member)


# Site configuration versions


async def publish_app_info(repositories: TenantRepositories, name: str) -> int:
    """
    Publish a version of the site configuration.

    The published version is flagged `previous` before the target takes
    its place, every other version is unpublished and versions flagged
    `previous` earlier move to `history`.

    Args:
        repositories: Repositories of the caller's tenant
        name: Name of the version to publish

    Returns:
        Number of records updated

    Raises:
        EntityNotFoundError: If no version has the name

    """
    app_info = repositories.app_info
    if not await app_info.exists(name):
        raise EntityNotFoundError(app_info.descriptor.type_name, name)

    count = 0
    current = await app_info.find_one(
        {"where": {"published": True}, "fields": {"name": True}}
    )
    if current is not None:
        await app_info.update_by_id(current.name, {"previous": True})
        count += 1

    await app_info.update_by_id(
        name,
        {
            "published": True,
            "publishedDate": datetime.now(UTC),
            "draft": False,
            "previous": False,
            "history": False,
        },
    )
    count += 1

    unpublished = await app_info.update_all(
        {"published": False}, {"name": {"neq": name}}
    )
    count += unpublished["count"]

    superseded: dict[str, object] = {"previous": True}
    if current is not None:
        superseded["name"] = {"neq": current.name}
    archived = await app_info.update_all(
        {"previous": False, "history": True}, superseded
    )
    count += archived["count"]

    logger.info(
        "Published site configuration %s for %s (%d records updated)",
        name,
        repositories.tenant_key,
        count,
    )
    return count


async def revert_app_info(
    repositories: TenantRepositories, name: str | None = None
) -> int:
    """
    Publish the `previous` version again; the published one becomes `previous`.

    Raises:
        NoPreviousVersionError: If no version is flagged `previous`

    """
    app_info = repositories.app_info
    previous = await app_info.find_one(
        {"where": {"previous": True}, "fields": {"name": True}}
    )
    if previous is None:
        raise NoPreviousVersionError(name)

    await app_info.update_by_id(previous.name, {"published": True, "previous": False})
    replaced = await app_info.update_all(
        {"published": False, "previous": True},
        {"name": {"neq": previous.name}, "published": True},
    )
    count = 1 + replaced["count"]

    logger.info(
        "Reverted site configuration of %s to %s (%d records updated)",
        repositories.tenant_key,
        previous.name,
        count,
    )
    return count
