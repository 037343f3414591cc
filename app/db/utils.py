"""Utility functions for the persistence layer."""

import re
from datetime import UTC, datetime

LOCAL_SUFFIX = ".local"


def sanitize_tenant_key(tenant_key: str) -> str:
    """Replace every `.` of a tenant key with `_`."""
    return tenant_key.replace(".", "_")


def collection_name(type_name: str, tenant_key: str) -> str:
    """Build the tenant-scoped collection name, e.g. `AppData_app_acme_com`."""
    return f"{type_name}_app_{sanitize_tenant_key(tenant_key)}"


def strip_local_suffix(hostname: str) -> str:
    """Drop a trailing `.local` used by development hostnames."""
    return re.sub(r"\.local$", "", hostname)


def quote_identifier(identifier: str) -> str:
    """Quote identifier if it contains special characters (hyphens, etc.)."""
    if "-" in identifier or " " in identifier or identifier[0].isdigit():
        return f"`{identifier}`"
    return identifier


def parse_datetime(value: str | datetime) -> datetime:
    """Parse an ISO 8601 timestamp, assuming UTC when no offset is given."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def to_iso(value: datetime) -> str:
    """Format a datetime as an ISO 8601 UTC string with a `Z` suffix."""
    return parse_datetime(value).astimezone(UTC).isoformat().replace("+00:00", "Z")
