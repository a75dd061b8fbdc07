"""
    Upload orchestration: authorize, transfer the bytes, persist metadata.

    The three steps run strictly in order and nothing is retried. A failure
    at any step ends the submission with a single user-facing message. When
    the transfer succeeded but persisting metadata failed, the stored object
    stays where it is; the user may simply upload again.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional
import logging
import mimetypes
import httpx

from snapvault.client.api import ImageAPIClient
from snapvault.client.events import GALLERY_REFRESH, Event, EventChannel
from snapvault.client.identity import IdentityProvider, resolve_owner
from snapvault.exceptions import NotSignedInError, ServiceRequestError, UploadValidationError
from snapvault.image_service.models import SaveMetadataRequest
from snapvault.image_service.tags import normalize_tags
from snapvault.image_service.validation import validate_image_bytes, validate_upload

log = logging.getLogger(__name__)

class UploadStage(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    AUTHORIZING = "authorizing"
    TRANSFERRING = "transferring"
    PERSISTING = "persisting"
    COMPLETE = "complete"
    FAILED = "failed"

STAGE_PROGRESS = {
    UploadStage.PREPARING: 0,
    UploadStage.AUTHORIZING: 10,
    UploadStage.TRANSFERRING: 30,
    UploadStage.PERSISTING: 70,
    UploadStage.COMPLETE: 100,
}

@dataclass
class ImageFile:
    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path, content_type: Optional[str] = None) -> "ImageFile":
        path = Path(path)
        if content_type is None:
            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, content_type=content_type, data=path.read_bytes())

@dataclass
class UploadOutcome:
    success: bool
    stage: UploadStage
    message: str
    image_id: Optional[str] = None
    image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    already_exists: bool = False

ProgressListener = Callable[[UploadStage, int], None]

def public_url(upload_url: str) -> str:
    """Drops the query string (signature) from a pre-signed URL."""
    return upload_url.split("?", 1)[0]

class UploadOrchestrator:
    def __init__(
        self,
        api: ImageAPIClient,
        events: Optional[EventChannel] = None,
        identity: Optional[IdentityProvider] = None,
    ):
        self.api = api
        self.events = events
        self.identity = identity
        self._listeners: List[ProgressListener] = []

        # form state
        self.selected_file: Optional[ImageFile] = None
        self.raw_tags: str = ""
        self.stage = UploadStage.IDLE
        self.progress = 0
        self.message = ""

    def add_progress_listener(self, listener: ProgressListener):
        self._listeners.append(listener)

    def select_file(self, file: Optional[ImageFile]):
        self.selected_file = file

    def set_tags(self, text: str):
        self.raw_tags = text

    @property
    def busy(self) -> bool:
        return self.stage in (UploadStage.PREPARING, UploadStage.AUTHORIZING,
                              UploadStage.TRANSFERRING, UploadStage.PERSISTING)

    def _enter(self, stage: UploadStage):
        self.stage = stage
        self.progress = max(self.progress, STAGE_PROGRESS[stage])
        for listener in self._listeners:
            try:
                listener(stage, self.progress)
            except Exception:
                log.exception("Progress listener failed at %s", stage.value)

    def _fail(self, message: str) -> UploadOutcome:
        failed_at = self.stage
        self.stage = UploadStage.FAILED
        self.message = message
        log.warning("Upload failed during %s: %s", failed_at.value, message)
        return UploadOutcome(success=False, stage=failed_at, message=message)

    def _clear_form(self):
        self.selected_file = None
        self.raw_tags = ""

    async def upload(self) -> UploadOutcome:
        """Submits the current form state."""
        return await self.submit(self.selected_file, self.raw_tags)

    async def submit(
        self,
        file: Optional[ImageFile],
        raw_tags: str = "",
        owner_id: Optional[str] = None,
    ) -> UploadOutcome:
        self.progress = 0
        self.message = ""
        self._enter(UploadStage.PREPARING)

        # Validation: no network call is made past this block on failure
        if file is None:
            return self._fail("Please select an image")
        try:
            validate_upload(file.name, file.content_type, file.size)
            validate_image_bytes(file.data, file.content_type)
            owner_id = resolve_owner(owner_id, self.identity)
        except (UploadValidationError, NotSignedInError) as e:
            return self._fail(e.message)
        tags = normalize_tags(raw_tags)

        # Step 1: upload credential
        self._enter(UploadStage.AUTHORIZING)
        try:
            credential = await self.api.authorize_upload(file.name, owner_id, file.content_type, file.size)
        except (ServiceRequestError, httpx.HTTPError) as e:
            log.error("Authorization error: %s", e)
            return self._fail("Could not obtain upload authorization. Please try again.")

        # Step 2: bytes straight to object storage
        self._enter(UploadStage.TRANSFERRING)
        try:
            await self.api.transfer_bytes(credential.upload_url, file.data, file.content_type)
        except (ServiceRequestError, httpx.HTTPError) as e:
            log.error("Transfer error: %s", e)
            return self._fail("Uploading the image to storage failed. Please try again.")

        # Step 3: metadata
        self._enter(UploadStage.PERSISTING)
        image_url = public_url(credential.upload_url)
        payload = SaveMetadataRequest(
            image_url=image_url,
            image_id=credential.image_id,
            user_id=owner_id,
            tags=tags,
            timestamp=datetime.now(timezone.utc).isoformat(),
            file_name=file.name,
            file_size=file.size,
            content_type=file.content_type,
        )
        try:
            saved = await self.api.persist_metadata(payload)
        except (ServiceRequestError, httpx.HTTPError) as e:
            log.error("Metadata error for %s: %s", credential.image_id, e)
            return self._fail("The image was uploaded but saving its details failed. Please upload it again.")

        self._enter(UploadStage.COMPLETE)
        self.message = saved.message if saved.already_exists else "Image uploaded successfully!"
        self._clear_form()
        log.info("Uploaded %s for %s", credential.image_id, owner_id)
        if self.events is not None:
            await self.events.publish(Event(GALLERY_REFRESH, owner_id=owner_id, payload=credential.image_id))
        return UploadOutcome(
            success=True,
            stage=UploadStage.COMPLETE,
            message=self.message,
            image_id=credential.image_id,
            image_url=image_url,
            tags=tags,
            already_exists=saved.already_exists,
        )
