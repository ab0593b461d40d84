"""
Workbench exceptions and their HTTP error handlers.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class WorkbenchError(Exception):
    """Base exception carrying an error code and HTTP status."""

    def __init__(
        self,
        message: str,
        code: str = 'WORKBENCH_ERROR',
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class ValidationError(WorkbenchError):
    """Malformed or incomplete input."""

    def __init__(self, message: str):
        super().__init__(message, 'VALIDATION_ERROR', status.HTTP_422_UNPROCESSABLE_ENTITY)


class CredentialError(WorkbenchError):
    """No usable API key."""

    def __init__(self, message: str = 'No valid API key found'):
        super().__init__(message, 'CREDENTIAL_ERROR', status.HTTP_400_BAD_REQUEST)


class NotFoundError(WorkbenchError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f'{resource} not found: {identifier}',
            'NOT_FOUND',
            status.HTTP_404_NOT_FOUND,
        )


class InvalidOperationError(WorkbenchError):
    """Operation not valid for the resource's current state."""

    def __init__(self, message: str):
        super().__init__(message, 'INVALID_OPERATION', status.HTTP_400_BAD_REQUEST)


class RemoteProviderError(WorkbenchError):
    """The synthesis provider rejected a call or could not be reached."""

    def __init__(self, message: str, provider_status: Optional[int] = None):
        self.provider_status = provider_status
        super().__init__(message, 'REMOTE_PROVIDER_ERROR', status.HTTP_502_BAD_GATEWAY)


class RetrievalError(WorkbenchError):
    """Fetching or decoding a finished artifact failed."""

    def __init__(self, message: str):
        super().__init__(message, 'RETRIEVAL_ERROR', status.HTTP_502_BAD_GATEWAY)


async def workbench_error_handler(request: Request, exc: WorkbenchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning('%s %s failed: %s', request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={'detail': exc.message, 'code': exc.code},
    )


def register_exception_handlers(app: FastAPI):
    """Map workbench exceptions to JSON error responses."""
    app.add_exception_handler(WorkbenchError, workbench_error_handler)
