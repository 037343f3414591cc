"""Push message shapes handed to the push sender."""

from typing import Literal

from pydantic import BaseModel, Field

Platform = Literal["ios", "android"]


class PushMessage(BaseModel):
    """Push notification addressed to one device token."""

    token: str = Field(..., description="Device push token")
    title: str | None = Field(None, description="Notification title")
    body: str = Field(..., description="Notification body")
    data: dict[str, str] = Field(default_factory=dict, description="Message data")
    badge: int = Field(0, description="Unread count shown on the app icon")
    thread_id: str | None = Field(None, description="Thread/group id")

    def platform_payload(self, platform: Platform) -> dict[str, object]:
        """Return the provider specific part carrying badge and thread id."""
        if platform == "ios":
            aps: dict[str, object] = {"badge": self.badge}
            if self.thread_id:
                aps["threadId"] = self.thread_id
            return {"apns": {"payload": {"aps": aps}}}

        android: dict[str, object] = {
            "notification": {"notificationCount": self.badge}
        }
        if self.thread_id:
            android["data"] = {"threadId": self.thread_id}
        return {"android": android}

    def to_provider_message(self, platform: Platform) -> dict[str, object]:
        """Serialise into the provider message format."""
        return {
            "token": self.token,
            "data": self.data,
            "notification": {"title": self.title, "body": self.body},
            **self.platform_payload(platform),
        }
