"""Repositories of one tenant's content entities."""

from db.model_cache import ModelCache
from db.repository import MultiTenantRepository

from .models import AppData, AppInfo, AppMember


class TenantRepositories:
    """Content repositories bound to one tenant key."""

    def __init__(self, model_cache: ModelCache, tenant_key: str) -> None:
        self.tenant_key = tenant_key
        self.app_data = MultiTenantRepository(AppData, model_cache, tenant_key)
        self.app_members = MultiTenantRepository(AppMember, model_cache, tenant_key)
        self.app_info = MultiTenantRepository(AppInfo, model_cache, tenant_key)

    async def site_config(self) -> AppInfo | None:
        """Current site configuration: the first draft `AppInfo`."""
        return await self.app_info.find_one({"where": {"draft": True}})
