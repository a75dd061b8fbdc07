from datetime import datetime, timezone
from typing import Dict, Optional
import json
import logging
import time
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from snapvault.storage.dynamodb import DynamoDBService
from snapvault.storage.s3 import S3Service, object_key
from snapvault.image_service.models import (
    DeleteImageResponse,
    ImageRecord,
    ListImagesResponse,
    SaveMetadataRequest,
    SaveMetadataResponse,
    UploadCredential,
    parse_records,
)
from snapvault.image_service.tags import normalize_tag_list, normalize_tags
from snapvault.image_service.validation import sanitize_filename
from snapvault.settings import settings
from snapvault.exceptions import (
    DynamoDBException,
    ImageNotFoundException,
    InvalidImageException,
    MissingFieldException,
    StorageException,
)

log = logging.getLogger(__name__)

def new_image_id(user_id: str, filename: str, now_ms: Optional[int] = None) -> str:
    """Builds '{userId}-{uploadTimeMillis}-{sanitizedFilename}'."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{user_id}-{now_ms}-{sanitize_filename(filename)}"

def issue_upload_credential(
    s3: S3Service,
    filename: Optional[str],
    user_id: Optional[str],
    content_type: Optional[str] = None,
    file_size: Optional[int] = None,
) -> UploadCredential:
    """Generates a pre-signed upload URL and the image id it will be stored under."""
    missing = [name for name, value in (("filename", filename), ("userId", user_id)) if not value]
    if missing:
        raise MissingFieldException(*missing)
    if not filename.strip():
        raise InvalidImageException("Invalid filename: must be a non-empty string")

    content_type = content_type or "application/octet-stream"
    if not content_type.startswith("image/"):
        log.warning("Non-image content type provided: %s", content_type)

    image_id = new_image_id(user_id, filename)
    key = object_key(image_id)
    metadata = {
        "original-filename": sanitize_filename(filename),
        "user-id": user_id,
    }
    if file_size is not None:
        metadata["file-size"] = str(file_size)
    try:
        upload_url = s3.generate_presigned_upload_url(key, content_type, metadata=metadata)
    except (BotoCoreError, ClientError) as e:
        log.error(f"S3 presign failed: {e}")
        raise StorageException(f"Failed to generate pre-signed URL: {e}")

    log.info("Issued upload credential for %s", image_id)
    return UploadCredential(
        upload_url=upload_url,
        image_id=image_id,
        key=key,
        expires_in=settings.presign_expire_seconds,
        message="Pre-signed URL generated successfully",
    )

def parse_timestamp(value: str) -> str:
    """Checks an ISO-8601 instant; a trailing Z is accepted for UTC."""
    try:
        datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise InvalidImageException(f"Invalid timestamp '{value}': expected ISO-8601")
    return value.strip()

def image_id_from_url(image_url: str) -> str:
    return image_url.split("?")[0].rstrip("/").split("/")[-1]

def save_metadata(db: DynamoDBService, request: SaveMetadataRequest) -> SaveMetadataResponse:
    """Persists image metadata unless a record with the same id already exists."""
    missing = [name for name, value in (("imageUrl", request.image_url), ("userId", request.user_id)) if not value]
    if missing:
        raise MissingFieldException(*missing)

    image_id = request.image_id or image_id_from_url(request.image_url)
    if isinstance(request.tags, str):
        tags = normalize_tags(request.tags)
    else:
        tags = normalize_tag_list(request.tags or [])

    now = datetime.now(timezone.utc)
    try:
        record = ImageRecord(
            image_id=image_id,
            owner_id=request.user_id,
            url=request.image_url,
            tags=tags,
            timestamp=parse_timestamp(request.timestamp) if request.timestamp else now.isoformat(),
            upload_date=now.isoformat(),
            original_filename=request.file_name or image_id,
            file_size=request.file_size,
            content_type=request.content_type,
        )
    except ValidationError as e:
        raise InvalidImageException(f"Invalid image metadata: {e.errors()[0]['msg']}")
    item = {
        "imageId": record.image_id,
        "userId": record.owner_id,
        "imageUrl": record.url,
        "tags": record.tags,
        "timestamp": record.timestamp,
        "uploadDate": record.upload_date,
        "originalFilename": record.original_filename,
        # search-friendly fields
        "searchTags": " ".join(record.tags),
        "yearMonth": now.strftime("%Y-%m"),
    }
    if record.file_size is not None:
        item["fileSize"] = record.file_size
    if record.content_type:
        item["contentType"] = record.content_type

    try:
        created = db.put_metadata_if_absent(item)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB put_metadata failed: {e}")
        raise DynamoDBException(f"Failed to save image metadata: {e}")

    if not created:
        return SaveMetadataResponse(
            message="Image metadata already exists",
            image_id=image_id,
            already_exists=True,
        )
    log.info("Saved image metadata %s", image_id)
    return SaveMetadataResponse(
        message="Image metadata saved successfully",
        image_id=image_id,
        tags=record.tags,
        timestamp=record.timestamp,
    )

def _with_url(s3: S3Service, item: dict) -> dict:
    row = dict(item)
    if not row.get("imageUrl") and row.get("imageId"):
        row["imageUrl"] = s3.public_url(object_key(row["imageId"]))
    if row.get("fileSize") is not None:
        row["fileSize"] = int(row["fileSize"])
    return row

def fetch_images(
    db: DynamoDBService,
    s3: S3Service,
    user_id: Optional[str] = None,
    tag: Optional[str] = None,
    limit: int = 50,
    exclusive_start_key: Optional[Dict[str, str]] = None,
) -> ListImagesResponse:
    """Fetches images from DynamoDB with optional owner and tag filters."""
    tag = tag.strip().lower() if tag and tag.strip() else None
    try:
        if tag:
            resp = db.scan_metadata(tag=tag, user_id=user_id, limit=limit, exclusive_start_key=exclusive_start_key)
        elif user_id:
            resp = db.query_by_owner(user_id, limit=limit, exclusive_start_key=exclusive_start_key)
        else:
            resp = db.scan_metadata(limit=limit, exclusive_start_key=exclusive_start_key)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB fetch_images failed: {e}")
        raise DynamoDBException(f"Failed to fetch images: {e}")

    images = parse_records(_with_url(s3, it) for it in resp.get("Items", []))
    next_key = resp.get("LastEvaluatedKey")
    return ListImagesResponse(
        images=images,
        total=len(images),
        has_more=next_key is not None,
        next_token=json.dumps(next_key) if next_key else None,
    )

def get_image_meta(db: DynamoDBService, user_id: str, image_id: str) -> dict:
    """Gets image metadata from DynamoDB."""
    try:
        item = db.get_metadata(user_id, image_id)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB get_image_meta failed: {e}")
        raise DynamoDBException(f"Failed to get image metadata: {e}")
    if not item:
        raise ImageNotFoundException(image_id)
    return item

def remove_image(
    db: DynamoDBService,
    s3: S3Service,
    image_id: Optional[str],
    user_id: Optional[str],
) -> DeleteImageResponse:
    """Removes image metadata from DynamoDB, then its object from S3.

    The two deletes are not transactional. When the object delete fails the
    metadata is already gone; the failure is logged and reported through
    ``object_deleted`` but not repaired.
    """
    missing = [name for name, value in (("imageId", image_id), ("userId", user_id)) if not value]
    if missing:
        raise MissingFieldException(*missing)

    get_image_meta(db, user_id, image_id)
    try:
        db.delete_metadata(user_id, image_id)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB delete_metadata failed: {e}")
        raise DynamoDBException(f"Failed to delete image metadata: {e}")

    object_deleted = True
    try:
        s3.delete(object_key(image_id))
    except (BotoCoreError, ClientError) as e:
        log.error(f"S3 delete failed for {image_id}, object left orphaned: {e}")
        object_deleted = False

    log.info("Deleted image %s", image_id)
    return DeleteImageResponse(
        message="Image deleted successfully",
        image_id=image_id,
        object_deleted=object_deleted,
    )
