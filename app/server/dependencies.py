"""FastAPI dependencies resolving the tenant, the caller and shared services."""

import json

from fastapi import Depends, Query, Request
from fastapi_mongo_base.core.exceptions import BaseHTTPException

from apps.activity.tracker import ActivityTracker
from apps.base.schemas import UserProfile
from apps.content.repositories import TenantRepositories
from apps.directory.services import DomainDirectory
from apps.notifications.dispatch import NotificationDispatcher
from db.model_cache import ModelCache

from . import db


def get_tenant_key(request: Request) -> str:
    """Resolve the tenant key from the forwarded host or the request hostname."""
    return db.tenant_resolver.resolve_request(request.headers, request.url.hostname)


def get_current_user(request: Request) -> UserProfile:
    """Return the user placed on the request by the authentication middleware."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise BaseHTTPException(
            status_code=401, error="unauthorized", detail="Authentication required"
        )
    if isinstance(user, UserProfile):
        return user
    return UserProfile.model_validate(user)


def get_model_cache() -> ModelCache:
    return db.model_cache


def get_directory() -> DomainDirectory:
    return db.directory


def get_activity_tracker() -> ActivityTracker:
    return db.activity_tracker


def get_dispatcher() -> NotificationDispatcher:
    return db.dispatcher


def get_repositories(
    tenant_key: str = Depends(get_tenant_key),
    model_cache: ModelCache = Depends(get_model_cache),
) -> TenantRepositories:
    """Content repositories of the caller's tenant."""
    return TenantRepositories(model_cache, tenant_key)


def _load_json(name: str, raw: str | None) -> dict[str, object] | None:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise BaseHTTPException(
            status_code=400,
            error="invalid_query",
            detail=f"Query parameter '{name}' is not valid JSON: {exc.msg}",
        ) from exc
    if not isinstance(value, dict):
        raise BaseHTTPException(
            status_code=400,
            error="invalid_query",
            detail=f"Query parameter '{name}' must be a JSON object",
        )
    return value


def filter_query(
    filter: str | None = Query(None, description="JSON filter object"),  # noqa: A002
) -> dict[str, object] | None:
    """Parse the `filter` query parameter."""
    return _load_json("filter", filter)


def where_query(
    where: str | None = Query(None, description="JSON where object"),
) -> dict[str, object] | None:
    """Parse the `where` query parameter."""
    return _load_json("where", where)
