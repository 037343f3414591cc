"""Tests for content services."""

import pytest
import pytest_asyncio

from apps.activity.tracker import ActivityTracker
from apps.base.schemas import UserProfile
from apps.content.exceptions import NoPreviousVersionError
from apps.content.models import AppData, AppInfo, AppMember
from apps.content.repositories import TenantRepositories
from apps.content.services import (
    clean_public_member,
    create_app_data,
    find_app_data,
    find_public_app_data,
    find_public_members,
    get_public_app_data,
    get_public_member,
    public_filter,
    publish_app_info,
    revert_app_info,
    selects_posts,
)
from apps.notifications.dispatch import NotificationDispatcher
from db.exceptions import EntityNotFoundError

ADA = UserProfile(id="ada", email="ada@acme.com")


class TestSelectsPosts:
    """Test cases for detecting reads of the post feed."""

    def test_post_filters(self) -> None:
        """Test plain and `eq` post filters."""
        assert selects_posts({"where": {"type": "post"}})
        assert selects_posts({"where": {"type": {"eq": "post"}}, "limit": 10})

    def test_other_filters(self) -> None:
        """Test everything else."""
        assert not selects_posts(None)
        assert not selects_posts({})
        assert not selects_posts({"where": {"type": "comment"}})
        assert not selects_posts({"where": {"type": {"inq": ["post"]}}})
        assert not selects_posts({"where": "type = post"})


class TestCreateAppData:
    """Test cases for create_app_data."""

    @pytest.mark.asyncio
    async def test_stamps_author_and_timestamps(
        self, acme: TenantRepositories, dispatcher: NotificationDispatcher
    ) -> None:
        """Test unset author and timestamps are filled in."""
        stored = await create_app_data(
            acme, dispatcher, AppData(type="note", data={"text": "hi"}), ADA
        )

        assert stored.name
        assert stored.createdBy == "ada"
        assert stored.createdAt is not None
        assert stored.updatedAt == stored.createdAt
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_keeps_given_author(
        self, acme: TenantRepositories, dispatcher: NotificationDispatcher
    ) -> None:
        """Test an explicit author is kept."""
        stored = await create_app_data(
            acme, dispatcher, AppData(name="n1", type="note", createdBy="bob"), ADA
        )

        assert stored.createdBy == "bob"

    @pytest.mark.asyncio
    async def test_submits_notified_types(
        self, acme: TenantRepositories, dispatcher: NotificationDispatcher
    ) -> None:
        """Test posts are submitted for dispatch after being stored."""
        await acme.app_members.create(AppMember(userName="ada"))

        await create_app_data(acme, dispatcher, AppData(name="p1", type="post"), ADA)

        assert dispatcher.pending == 1
        await dispatcher.drain()
        assert await acme.app_data.exists("p1")


class TestFindAppData:
    """Test cases for find_app_data."""

    @pytest.mark.asyncio
    async def test_reading_posts_marks_them_seen(
        self, acme: TenantRepositories, tracker: ActivityTracker
    ) -> None:
        """Test the post feed records the caller's visit."""
        await acme.app_data.create(AppData(name="p1", type="post"))

        found = await find_app_data(acme, tracker, {"where": {"type": "post"}}, ADA)

        assert [item.name for item in found] == ["p1"]
        last_seen = tracker.get_activity_by_user("acme.com", "ada@acme.com", "post")
        assert last_seen.endswith("Z")

    @pytest.mark.asyncio
    async def test_other_reads_leave_activity(
        self, acme: TenantRepositories, tracker: ActivityTracker
    ) -> None:
        """Test other filters do not touch the tracker."""
        await find_app_data(acme, tracker, {"where": {"type": "comment"}}, ADA)
        await find_app_data(acme, tracker, None, ADA)

        assert tracker.get_all_domain_activity() == {}


@pytest_asyncio.fixture
async def versions(acme: TenantRepositories) -> TenantRepositories:
    """Site configuration with a published, a previous, an archived and a draft version."""
    await acme.app_info.create_all([
        AppInfo(name="v0", draft=False, history=True),
        AppInfo(name="v1", draft=False, published=True),
        AppInfo(name="v2", draft=False, previous=True),
        AppInfo(name="v3", info={"content": {"title": "Spring"}}),
    ])
    return acme


async def _flags(repositories: TenantRepositories) -> dict[str, tuple[bool, ...]]:
    infos = await repositories.app_info.find({"order": "name ASC"})
    return {
        info.name: (info.published, info.previous, info.history, info.draft)
        for info in infos
    }


class TestPublishAppInfo:
    """Test cases for publishing and reverting site configuration versions."""

    @pytest.mark.asyncio
    async def test_publish_draft(self, versions: TenantRepositories) -> None:
        """Test the published version becomes previous and the old previous history."""
        count = await publish_app_info(versions, "v3")

        assert count == 6
        assert await _flags(versions) == {
            "v0": (False, False, True, False),
            "v1": (False, True, False, False),
            "v2": (False, False, True, False),
            "v3": (True, False, False, False),
        }
        published = await versions.app_info.find_by_id("v3")
        assert published.publishedDate is not None
        assert published.title == "Spring"

    @pytest.mark.asyncio
    async def test_first_publish(self, acme: TenantRepositories) -> None:
        """Test publishing when nothing is published yet."""
        await acme.app_info.create(AppInfo(name="v1"))

        assert await publish_app_info(acme, "v1") == 1
        assert await _flags(acme) == {"v1": (True, False, False, False)}

    @pytest.mark.asyncio
    async def test_publish_unknown_version(self, versions: TenantRepositories) -> None:
        """Test an unknown version is not found and nothing changes."""
        before = await _flags(versions)

        with pytest.raises(EntityNotFoundError):
            await publish_app_info(versions, "v9")

        assert await _flags(versions) == before

    @pytest.mark.asyncio
    async def test_revert_after_publish(self, versions: TenantRepositories) -> None:
        """Test reverting swaps the published and previous versions."""
        await publish_app_info(versions, "v3")

        count = await revert_app_info(versions, "v3")

        assert count == 2
        flags = await _flags(versions)
        assert flags["v1"][:2] == (True, False)
        assert flags["v3"][:2] == (False, True)

    @pytest.mark.asyncio
    async def test_revert_without_previous(self, acme: TenantRepositories) -> None:
        """Test reverting fails when no version is flagged previous."""
        await acme.app_info.create(AppInfo(name="v1", published=True, draft=False))

        with pytest.raises(NoPreviousVersionError) as exc_info:
            await revert_app_info(acme, "v1")

        assert exc_info.value.name == "v1"


class TestPublicReads:
    """Test cases for reads served without a login."""

    def test_public_filter_overrides_access(self) -> None:
        """Test the access condition is forced and the input is left alone."""
        given = {"where": {"access": "private", "type": "post"}, "limit": 2}

        assert public_filter(given) == {
            "where": {"access": "public", "type": "post"},
            "limit": 2,
        }
        assert given["where"]["access"] == "private"
        assert public_filter(None) == {"where": {"access": "public"}}

    @pytest.mark.asyncio
    async def test_only_public_items(self, acme: TenantRepositories) -> None:
        """Test private items are neither listed nor fetched by id."""
        await acme.app_data.create_all([
            AppData(name="p1", type="post", access="public"),
            AppData(name="p2", type="post", access="private"),
            AppData(name="p3", type="post"),
        ])

        found = await find_public_app_data(acme, {"where": {"access": "private"}})

        assert [item.name for item in found] == ["p1"]
        assert (await get_public_app_data(acme, "p1")).name == "p1"
        with pytest.raises(EntityNotFoundError):
            await get_public_app_data(acme, "p2")

    def test_clean_public_member(self) -> None:
        """Test credentials and push registration are removed from a copy."""
        member = AppMember(
            userName="ada",
            password="secret",
            firstName="Ada",
            memberData={"pushToken": "tok", "pushType": "ios", "bio": "hi"},
        )

        cleaned = clean_public_member(member)

        assert cleaned.password is None
        assert cleaned.memberData == {"bio": "hi"}
        assert cleaned.firstName == "Ada"
        assert member.password == "secret"
        assert member.push_token == "tok"

    @pytest.mark.asyncio
    async def test_public_members(self, acme: TenantRepositories) -> None:
        """Test listed and fetched members are cleaned."""
        await acme.app_members.create(
            AppMember(userName="ada", password="secret", memberData={"pushToken": "t"})
        )

        listed = await find_public_members(acme)
        fetched = await get_public_member(acme, "ada")

        assert [m.password for m in listed] == [None]
        assert fetched.memberData == {}
        with pytest.raises(EntityNotFoundError):
            await get_public_member(acme, "bob")
