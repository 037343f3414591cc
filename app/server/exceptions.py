"""HTTP mapping of persistence errors."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from apps.content.exceptions import NoPreviousVersionError
from db.exceptions import (
    EntityNotFoundError,
    InvalidBodyError,
    RepositoryError,
    TenantNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_RESPONSES: dict[type[RepositoryError], tuple[int, str]] = {
    TenantNotFoundError: (404, "tenant_not_found"),
    EntityNotFoundError: (404, "entity_not_found"),
    InvalidBodyError: (400, "invalid_body"),
    ValidationError: (422, "validation_error"),
    NoPreviousVersionError: (409, "no_previous_version"),
}


async def repository_exception_handler(
    request: Request, exc: RepositoryError
) -> JSONResponse:
    """Render a persistence error in the `{error, detail}` error format."""
    status_code, error = ERROR_RESPONSES.get(type(exc), (500, "repository_error"))
    if status_code >= 500:
        logger.error("Unmapped repository error on %s: %s", request.url.path, exc)
    content: dict[str, object] = {"error": error, "detail": str(exc)}
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> FastAPI:
    """Install the persistence error handlers on an application."""
    app.add_exception_handler(RepositoryError, repository_exception_handler)
    return app
