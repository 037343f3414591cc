"""Push notification dispatch for new posts, comments and referrals."""

import asyncio
import logging

from apps.activity.tracker import ActivityTracker
from apps.base.schemas import UserProfile
from apps.content.models import NOTIFIED_TYPES, AppData, AppMember
from apps.content.repositories import TenantRepositories
from db.utils import parse_datetime, to_iso

from .schemas import PushMessage
from .sender import PushSender

logger = logging.getLogger(__name__)

LAST_SEEN_KIND = "post"
UNREAD_TYPES = ["post", "comment"]


class NotificationDispatcher:
    """
    Sends push notifications triggered by content writes.

    Dispatch runs as a detached task: `submit` returns immediately and the
    caller never observes the outcome. Every failure is logged and
    swallowed inside the task.
    """

    def __init__(self, tracker: ActivityTracker, sender: PushSender) -> None:
        """
        Initialize the dispatcher.

        Args:
            tracker: Activity tracker holding each user's last-seen post time
            sender: Push sender receiving the composed messages

        """
        self._tracker = tracker
        self._sender = sender
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(
        self,
        record: AppData,
        user: UserProfile,
        repositories: TenantRepositories,
    ) -> None:
        """Schedule dispatch for a written record without waiting for it."""
        if record.type not in NOTIFIED_TYPES:
            return
        task = asyncio.create_task(self.dispatch(record, user, repositories))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for all submitted dispatches to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def dispatch(
        self,
        record: AppData,
        user: UserProfile,
        repositories: TenantRepositories,
    ) -> int:
        """
        Notify the recipients of a record.

        Args:
            record: Persisted post, comment or referral
            user: Caller who wrote the record
            repositories: Repositories of the caller's tenant

        Returns:
            Number of messages handed to the sender (0 on any failure)

        """
        try:
            return await self._dispatch(record, user, repositories)
        except Exception:
            logger.exception(
                "Notification dispatch failed for %s %s on %s",
                record.type,
                record.name,
                repositories.tenant_key,
            )
            return 0

    async def _dispatch(
        self,
        record: AppData,
        user: UserProfile,
        repositories: TenantRepositories,
    ) -> int:
        feature = "pushReferral" if record.type == "referral" else "pushBasic"
        site = await repositories.site_config()
        if site is None or not site.feature_enabled(feature):
            logger.debug(
                "%s disabled for %s, skipping", feature, repositories.tenant_key
            )
            return 0

        actor = await repositories.app_members.find_by_id(user.identity)
        recipients = await self._recipients(record, actor, repositories)
        body, data, thread_id = compose(record, actor)

        sent = 0
        for recipient in recipients:
            token = recipient.push_token
            if not token:
                continue
            message = PushMessage(
                token=token,
                title=site.title,
                body=body,
                data=data,
                thread_id=thread_id,
            )
            try:
                message.badge = await self._unread_count(recipient, repositories)
                await self._sender.send(message, recipient.push_platform)
            except Exception:
                logger.exception("Failed to notify %s", recipient.userName)
                continue
            sent += 1
        return sent

    @staticmethod
    async def _recipients(
        record: AppData, actor: AppMember, repositories: TenantRepositories
    ) -> list[AppMember]:
        if record.type == "referral":
            recipient = (record.data or {}).get("recipient")
            if not recipient:
                logger.warning("Referral %s has no recipient", record.name)
                return []
            return [await repositories.app_members.find_by_id(recipient)]

        return await repositories.app_members.find(
            {"where": {"userName": {"neq": actor.userName}}}
        )

    async def _unread_count(
        self, recipient: AppMember, repositories: TenantRepositories
    ) -> int:
        """Count posts and comments newer than the recipient's last visit."""
        domain = repositories.tenant_key
        identity = UserProfile(id=recipient.userName, email=recipient.email)
        last_seen = self._tracker.get_activity_by_user(domain, identity, LAST_SEEN_KIND)
        if not last_seen:
            return 0

        unread = await repositories.app_data.find({
            "where": {
                "createdAt": {"gt": parse_datetime(last_seen)},
                "type": {"inq": UNREAD_TYPES},
            }
        })

        newest = max(
            (parse_datetime(item.createdAt) for item in unread if item.createdAt),
            default=None,
        )
        if newest is not None:
            # Only move forward; the stored value may have changed meanwhile
            current = self._tracker.get_activity_by_user(domain, identity, LAST_SEEN_KIND)
            if not current or newest > parse_datetime(current):
                self._tracker.set_activity(
                    domain, identity, LAST_SEEN_KIND, to_iso(newest)
                )

        return len(unread)


def compose(record: AppData, actor: AppMember) -> tuple[str, dict[str, str], str | None]:
    """Return the body, data and thread id of a record's notification."""
    name = actor.display_name
    record_id = str(record.name)
    data = record.data or {}

    if record.type == "post":
        return f"New message from {name}", {"postId": record_id}, None

    if record.type == "comment":
        thread_id = data.get("itemName")
        return (
            f"New comment from {name}",
            {"commentId": record_id},
            str(thread_id) if thread_id else None,
        )

    if data.get("preferredName"):
        thread_id = data["preferredName"]
    elif data.get("firstName"):
        thread_id = f"{data['firstName']} {data.get('lastName')}"
    else:
        thread_id = data.get("message")
    return (
        f"You have a new referral from {name}",
        {"commentId": record_id},
        str(thread_id) if thread_id else None,
    )
