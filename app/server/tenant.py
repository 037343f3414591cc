"""Tenant resolution from request hostnames."""

import logging
import re
from collections.abc import Callable, Mapping

from db.utils import strip_local_suffix

logger = logging.getLogger(__name__)

HostnamePolicy = Callable[[str], str]

FORWARDED_HOST_HEADER = "x-forwarded-host"


def extract_hostname(headers: Mapping[str, str], hostname: str | None) -> str:
    """
    Return the hostname a request was addressed to.

    Args:
        headers: Request headers
        hostname: Hostname of the request URL

    Returns:
        The forwarded host (without port) when present, else `hostname`

    """
    forwarded = headers.get(FORWARDED_HOST_HEADER)
    if forwarded:
        return forwarded.split(":", 1)[0]
    return hostname or ""


def product_hostname_policy(preview_domain: str) -> HostnamePolicy:
    """
    Build the product's hostname normalisation rules.

    The rules are product conventions rather than general hostname parsing:
    drop a leading `www.`, drop the `.preview.<preview_domain>` suffix of
    preview sites, turn the first `-` into `.` (preview hosts encode the
    site domain as `acme-com`) and drop a trailing `.local`.

    Only the first hyphen is replaced, so hosts with several hyphens keep
    all but the first one.
    """
    preview_suffix = re.compile(rf"\.preview\.{re.escape(preview_domain)}$")

    def normalize(hostname: str) -> str:
        hostname = re.sub(r"^www\.", "", hostname)
        hostname = preview_suffix.sub("", hostname)
        hostname = hostname.replace("-", ".", 1)
        return strip_local_suffix(hostname)

    return normalize


class TenantResolver:
    """Derives the tenant key of a request from its hostname."""

    def __init__(self, policy: HostnamePolicy) -> None:
        self.policy = policy

    def resolve(self, raw_host: str) -> str:
        """Return the canonical tenant key of a hostname."""
        tenant_key = self.policy(raw_host)
        logger.debug("Resolved host %r to tenant %r", raw_host, tenant_key)
        return tenant_key

    def resolve_request(self, headers: Mapping[str, str], hostname: str | None) -> str:
        """Return the tenant key of a request."""
        return self.resolve(extract_hostname(headers, hostname))
