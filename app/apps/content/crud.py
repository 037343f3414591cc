"""Standard CRUD endpoints over a tenant content repository."""

from collections.abc import Callable

from fastapi import APIRouter, Body, Depends, status

from apps.base.schemas import CountResponse
from db.models import BaseEntity
from db.repository import MultiTenantRepository
from server.dependencies import filter_query, get_repositories, where_query

from .repositories import TenantRepositories

RepositorySelector = Callable[[TenantRepositories], MultiTenantRepository]


def add_crud_routes(
    router: APIRouter,
    entity_cls: type[BaseEntity],
    select: RepositorySelector,
) -> APIRouter:
    """
    Register create, count, find, update, replace and delete endpoints.

    Args:
        router: Router carrying the prefix and the access dependencies
        entity_cls: Entity model of the request and response bodies
        select: Picks the entity's repository from the tenant repositories

    Returns:
        The router, for chaining

    """
    type_name = entity_cls.descriptor.type_name

    @router.post("", summary=f"Create {type_name}")
    async def create(
        data: entity_cls,
        repositories: TenantRepositories = Depends(get_repositories),
    ) -> entity_cls:
        return await select(repositories).create(data)

    @router.get("/count", summary=f"Count {type_name}")
    async def count(
        where: dict | None = Depends(where_query),
        repositories: TenantRepositories = Depends(get_repositories),
    ) -> CountResponse:
        return CountResponse(**await select(repositories).count(where))

    @router.get("", summary=f"Find {type_name}")
    async def find(
        filter: dict | None = Depends(filter_query),  # noqa: A002
        repositories: TenantRepositories = Depends(get_repositories),
    ) -> list[entity_cls]:
        return await select(repositories).find(filter)

    @router.patch("", summary=f"Update matching {type_name}")
    async def update_all(
        data: dict[str, object] = Body(...),
        where: dict | None = Depends(where_query),
        repositories: TenantRepositories = Depends(get_repositories),
    ) -> CountResponse:
        return CountResponse(**await select(repositories).update_all(data, where))

    @router.get("/{entity_id}", summary=f"Get {type_name}")
    async def find_by_id(
        entity_id: str,
        filter: dict | None = Depends(filter_query),  # noqa: A002
        repositories: TenantRepositories = Depends(get_repositories),
    ) -> entity_cls:
        return await select(repositories).find_by_id(entity_id, filter)

    @router.patch(
        "/{entity_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary=f"Update {type_name}",
    )
    async def update_by_id(
        entity_id: str,
        data: dict[str, object] = Body(...),
        repositories: TenantRepositories = Depends(get_repositories),
    ) -> None:
        await select(repositories).update_by_id(entity_id, data)

    @router.put(
        "/{entity_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary=f"Replace {type_name}",
    )
    async def replace_by_id(
        entity_id: str,
        data: entity_cls,
        repositories: TenantRepositories = Depends(get_repositories),
    ) -> None:
        await select(repositories).replace_by_id(entity_id, data)

    @router.delete(
        "/{entity_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary=f"Delete {type_name}",
    )
    async def delete_by_id(
        entity_id: str,
        repositories: TenantRepositories = Depends(get_repositories),
    ) -> None:
        await select(repositories).delete_by_id(entity_id)

    return router
