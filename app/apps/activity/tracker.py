"""In-memory per-user "last seen" activity tracker."""

import logging

from apps.base.schemas import UserProfile

logger = logging.getLogger(__name__)

# domain -> kind -> user identity -> value
ActivityItems = dict[str, str]
DomainActivity = dict[str, ActivityItems]
ActivityState = dict[str, DomainActivity]


class ActivityTracker:
    """
    Process-wide activity state, lost on restart.

    Writes overwrite unconditionally: whichever write lands last wins, no
    ordering comparison is made. The tracker is not locked; it is shared by
    all requests of the process and passed around as an injected dependency.
    """

    def __init__(self, state: ActivityState | None = None) -> None:
        self._activities: ActivityState = state if state is not None else {}

    @staticmethod
    def _identity(user: UserProfile | str) -> str:
        return user if isinstance(user, str) else user.identity

    def set_activity(
        self, domain: str, user: UserProfile | str, kind: str, value: str
    ) -> None:
        """Store the latest value of an activity kind for a user."""
        identity = self._identity(user)
        self._activities.setdefault(domain, {}).setdefault(kind, {})[identity] = value
        logger.debug("Activity %s/%s/%s = %s", domain, kind, identity, value)

    def get_activity_by_user(
        self, domain: str, user: UserProfile | str, kind: str
    ) -> str:
        """Return a user's value, or `""` when nothing is recorded."""
        return (
            self._activities.get(domain, {})
            .get(kind, {})
            .get(self._identity(user), "")
        )

    def get_activity(self, domain: str, kind: str) -> ActivityItems:
        """Return every user's value of an activity kind in a domain."""
        return self._activities.get(domain, {}).get(kind, {})

    def get_all_activity(self, domain: str) -> DomainActivity:
        """Return all activity kinds recorded for a domain."""
        return self._activities.get(domain, {})

    def set_all_domain_activity(self, data: ActivityState | None = None) -> None:
        """Replace the entire state (not a merge); None clears it."""
        self._activities = data if data is not None else {}
        logger.info("Activity state replaced (%d domains)", len(self._activities))

    def get_all_domain_activity(self) -> ActivityState:
        """Return the entire state."""
        return self._activities
