"""API routes administering the domain directory."""

from fastapi import APIRouter, Body, Depends, status

from apps.base.schemas import CountResponse, UserProfile
from server.dependencies import (
    filter_query,
    get_current_user,
    get_directory,
    where_query,
)

from .models import Domain
from .services import DomainDirectory

router = APIRouter(
    prefix="/domains", tags=["domains"], dependencies=[Depends(get_current_user)]
)


@router.post("")
async def create_domain(
    domain: Domain,
    directory: DomainDirectory = Depends(get_directory),
) -> Domain:
    """Register a domain."""

    return await directory.save(domain)


@router.get("/count")
async def count_domains(
    where: dict | None = Depends(where_query),
    directory: DomainDirectory = Depends(get_directory),
) -> CountResponse:
    """Count registered domains."""

    return CountResponse(**await directory.count(where))


@router.get("")
async def list_domains(
    filter: dict | None = Depends(filter_query),  # noqa: A002
    directory: DomainDirectory = Depends(get_directory),
) -> list[Domain]:
    """List registered domains."""

    return await directory.find(filter)


@router.patch("")
async def update_domains(
    data: dict[str, object] = Body(...),
    where: dict | None = Depends(where_query),
    directory: DomainDirectory = Depends(get_directory),
) -> CountResponse:
    """Partially update every matching domain."""

    return CountResponse(**await directory.update_all(data, where))


@router.get("/{hostname}")
async def get_domain(
    hostname: str,
    directory: DomainDirectory = Depends(get_directory),
) -> Domain:
    """Get a domain."""

    return await directory.get(hostname)


@router.patch("/{hostname}", status_code=status.HTTP_204_NO_CONTENT)
async def update_domain(
    hostname: str,
    data: dict[str, object] = Body(...),
    directory: DomainDirectory = Depends(get_directory),
) -> None:
    """Partially update a domain."""

    await directory.update_by_id(hostname, data)


@router.put("/{hostname}")
async def replace_domain(
    hostname: str,
    domain: Domain,
    directory: DomainDirectory = Depends(get_directory),
) -> Domain:
    """Replace a domain; the path hostname wins over the body."""

    domain.hostname = hostname
    return await directory.save(domain)


@router.delete("/{hostname}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_domain(
    hostname: str,
    directory: DomainDirectory = Depends(get_directory),
) -> None:
    """Delete a domain."""

    await directory.delete_by_id(hostname)
