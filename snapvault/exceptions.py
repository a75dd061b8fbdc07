"""
    Centralized exception handling for the SnapVault service and client.
"""
from typing import Optional
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
import logging

log = logging.getLogger(__name__)

# -------------------------
# Service exceptions
# -------------------------
class APIException(Exception):
    """Base class for API exceptions."""
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.detail)

class ImageNotFoundException(APIException):
    """Exception for when an image is not found."""
    def __init__(self, image_id: str):
        super().__init__(status_code=404, detail=f"Image with ID '{image_id}' not found.")

class InvalidImageException(APIException):
    """Exception for invalid image requests."""
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class MissingFieldException(APIException):
    """Exception for requests lacking required fields."""
    def __init__(self, *fields: str):
        self.fields = list(fields)
        super().__init__(status_code=400, detail=f"Missing required fields: {', '.join(fields)}")

class StorageException(APIException):
    """Exception for S3 failures."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

class DynamoDBException(APIException):
    """Exception for DynamoDB failures."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

# -------------------------
# Client exceptions
# -------------------------
class ClientException(Exception):
    """Base class for errors surfaced to the user by the client core."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

class UploadValidationError(ClientException):
    """Raised before any network call when an upload is not acceptable."""

class NotSignedInError(ClientException):
    """Raised when an owner-scoped operation runs without an identity."""
    def __init__(self, message: str = "Please sign in to continue."):
        super().__init__(message)

class ServiceRequestError(ClientException):
    """A collaborator call failed: transport error or non-success status."""
    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)

# -------------------------
# Handlers
# -------------------------
async def api_exception_handler(request: Request, exc: APIException):
    """Handles API exceptions."""
    log.error(f"API Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """Handles FastAPI HTTP exceptions."""
    log.error(f"HTTP Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    log.error(f"Unhandled Exception: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred."},
    )

def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
