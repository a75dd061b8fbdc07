from fastapi import APIRouter, Depends, Query, Response
from typing import Optional
import json
import logging

from snapvault.storage.dynamodb import DynamoDBService
from snapvault.storage.s3 import S3Service
from snapvault.dependencies.dependencies import get_s3_service, get_dynamodb_service
from snapvault.exceptions import InvalidImageException
from snapvault.image_service.service import issue_upload_credential, save_metadata, fetch_images, remove_image
from snapvault.image_service.models import (
    DeleteImageRequest,
    DeleteImageResponse,
    ListImagesResponse,
    PresignRequest,
    SaveMetadataRequest,
    SaveMetadataResponse,
    UploadCredential,
)

log = logging.getLogger(__name__)

router = APIRouter(
    tags=["snapvault"]
)

@router.post("/presign-url", response_model=UploadCredential)
def presign_url(
    body: PresignRequest,
    response: Response,
    s3: S3Service = Depends(get_s3_service),
):
    """Issues a time-limited upload URL for one image."""
    response.headers["Cache-Control"] = "no-store"
    return issue_upload_credential(
        s3,
        filename=body.filename,
        user_id=body.user_id,
        content_type=body.content_type,
        file_size=body.file_size,
    )

@router.post("/save-metadata", response_model=SaveMetadataResponse)
def save_metadata_handler(
    body: SaveMetadataRequest,
    db: DynamoDBService = Depends(get_dynamodb_service),
):
    """Persists image metadata; an existing record is reported, not overwritten."""
    return save_metadata(db, body)

@router.get("/search-images", response_model=ListImagesResponse)
def search_images(
    user_id: Optional[str] = Query(None, alias="userId"),
    tag: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    next_token: Optional[str] = Query(None, alias="nextToken"),
    db: DynamoDBService = Depends(get_dynamodb_service),
    s3: S3Service = Depends(get_s3_service),
):
    """Lists images by owner and/or tag."""
    exclusive_start_key = None
    if next_token:
        try:
            exclusive_start_key = json.loads(next_token)
        except json.JSONDecodeError:
            raise InvalidImageException("invalid nextToken")
        if not isinstance(exclusive_start_key, dict):
            raise InvalidImageException("invalid nextToken")
    return fetch_images(
        db, s3, user_id=user_id, tag=tag, limit=limit, exclusive_start_key=exclusive_start_key
    )

@router.post("/delete-image", response_model=DeleteImageResponse)
def delete_image(
    body: DeleteImageRequest,
    db: DynamoDBService = Depends(get_dynamodb_service),
    s3: S3Service = Depends(get_s3_service),
):
    """Deletes an image record and its stored object."""
    return remove_image(db, s3, image_id=body.image_id, user_id=body.user_id)
