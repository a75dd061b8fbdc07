from typing import Any, Iterable, List, Optional, Union
import logging
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from snapvault.image_service.tags import normalize_tag_list

log = logging.getLogger(__name__)

# Attribute names that have shown up as image ids in malformed rows.
RESERVED_IMAGE_IDS = frozenset({"tags", "url", "imageUrl", "imageId", "userId"})

class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

class ImageRecord(CamelModel):
    image_id: str = Field(alias="imageId")
    owner_id: str = Field(alias="userId")
    url: str = Field(validation_alias=AliasChoices("url", "imageUrl"), serialization_alias="url")
    tags: List[str] = []
    timestamp: Optional[str] = None
    upload_date: Optional[str] = Field(None, alias="uploadDate")
    original_filename: Optional[str] = Field(None, alias="originalFilename")
    file_size: Optional[int] = Field(None, alias="fileSize", ge=0)
    content_type: Optional[str] = Field(None, alias="contentType")

    @field_validator("image_id")
    @classmethod
    def check_image_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("imageId must not be empty")
        if value in RESERVED_IMAGE_IDS:
            raise ValueError(f"imageId '{value}' is a reserved name")
        return value

    @field_validator("owner_id", "url")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("tags", mode="before")
    @classmethod
    def check_tags(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return normalize_tag_list(value)

def parse_records(rows: Iterable[Any]) -> List[ImageRecord]:
    """Validates raw rows into ImageRecords, dropping rows that do not fit the schema."""
    records = []
    for row in rows:
        try:
            records.append(ImageRecord.model_validate(row))
        except ValidationError as e:
            log.warning("Rejected malformed image record %r: %s", row, e.errors())
    return records

# -------------------------
# Request / response bodies
# -------------------------
class PresignRequest(CamelModel):
    filename: Optional[str] = None
    user_id: Optional[str] = Field(None, alias="userId")
    content_type: Optional[str] = Field(None, alias="contentType")
    file_size: Optional[int] = Field(None, alias="fileSize", ge=0)

class UploadCredential(CamelModel):
    upload_url: str = Field(alias="uploadUrl")
    image_id: str = Field(alias="imageId")
    key: Optional[str] = None
    expires_in: Optional[int] = Field(None, alias="expiresIn")
    message: Optional[str] = None

class SaveMetadataRequest(CamelModel):
    image_url: Optional[str] = Field(None, alias="imageUrl")
    image_id: Optional[str] = Field(None, alias="imageId")
    user_id: Optional[str] = Field(None, alias="userId")
    tags: Union[List[str], str, None] = None
    timestamp: Optional[str] = None
    file_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("fileName", "originalFilename"),
        serialization_alias="fileName",
    )
    file_size: Optional[int] = Field(None, alias="fileSize", ge=0)
    content_type: Optional[str] = Field(None, alias="contentType")

class SaveMetadataResponse(CamelModel):
    message: str
    image_id: str = Field(alias="imageId")
    already_exists: bool = Field(False, alias="alreadyExists")
    tags: List[str] = []
    timestamp: Optional[str] = None

class ListImagesResponse(CamelModel):
    images: List[ImageRecord]
    total: int
    has_more: bool = Field(False, alias="hasMore")
    next_token: Optional[str] = Field(None, alias="nextToken")

class DeleteImageRequest(CamelModel):
    image_id: Optional[str] = Field(None, alias="imageId")
    user_id: Optional[str] = Field(None, alias="userId")

class DeleteImageResponse(CamelModel):
    message: str
    image_id: str = Field(alias="imageId")
    object_deleted: bool = Field(True, alias="objectDeleted")
