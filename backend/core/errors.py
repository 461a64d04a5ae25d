"""Typed failures raised by the inventory service.

The service never decides HTTP status codes. Each error carries a ``kind``
and the boundary (``register_error_handlers``) maps it to a response.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Base class for all inventory errors."""

    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InventoryError):
    """A required field is missing or a value cannot be used."""

    kind = "validation"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(InventoryError):
    """Another record already holds the item name."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(InventoryError):
    """No record exists for the identifier."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class StoreFailure(InventoryError):
    """The record store or the file store failed."""

    kind = "store_failure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(exc: InventoryError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InventoryError)
    async def _inventory_error(request: Request, exc: InventoryError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(exc)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error", "kind": StoreFailure.kind},
        )
