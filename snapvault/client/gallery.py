"""
    Gallery state for the signed-in owner: load, filter, confirmed delete.
"""
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Set, Union
from dataclasses import dataclass
import inspect
import logging
import httpx

from snapvault.client.api import ImageAPIClient
from snapvault.client.events import GALLERY_REFRESH, Event, EventChannel
from snapvault.client.identity import IdentityProvider, resolve_owner
from snapvault.exceptions import NotSignedInError, ServiceRequestError
from snapvault.image_service.models import ImageRecord

log = logging.getLogger(__name__)

LOAD_FAILED = "Failed to fetch images. Please try again."

class CardState(str, Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    DELETING = "deleting"

@dataclass
class DeleteOutcome:
    success: bool
    image_id: Optional[str]
    message: str
    performed: bool = True

Confirm = Callable[[ImageRecord], Union[bool, Awaitable[bool]]]

def matches_filter(record: ImageRecord, term: str) -> bool:
    term = term.strip().lower()
    if not term:
        return True
    return any(term in tag.lower() for tag in record.tags)

class GallerySynchronizer:
    def __init__(
        self,
        api: ImageAPIClient,
        events: Optional[EventChannel] = None,
        identity: Optional[IdentityProvider] = None,
        discard_stale_loads: bool = True,
    ):
        self.api = api
        self.identity = identity
        # False pins the old behavior: whichever response lands last wins.
        self.discard_stale_loads = discard_stale_loads

        self.images: List[ImageRecord] = []
        self.filter_text = ""
        self.deleting: Set[str] = set()
        self.pending_confirmation: Optional[str] = None
        self.error: Optional[str] = None
        self.message: Optional[str] = None
        self.owner_id: Optional[str] = None

        self._issued = 0
        self._applied = 0
        self._in_flight = 0

        if events is not None:
            events.subscribe(GALLERY_REFRESH, self._on_refresh)

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def filtered(self) -> List[ImageRecord]:
        return [img for img in self.images if matches_filter(img, self.filter_text)]

    def find(self, image_id: str) -> Optional[ImageRecord]:
        return next((img for img in self.images if img.image_id == image_id), None)

    def card_state(self, image_id: str) -> CardState:
        if image_id in self.deleting:
            return CardState.DELETING
        if image_id == self.pending_confirmation:
            return CardState.CONFIRMING
        return CardState.IDLE

    # -------------------------
    # Load
    # -------------------------
    async def load(self, owner_id: Optional[str] = None) -> List[ImageRecord]:
        """Fetches the owner's images and replaces the cache wholesale."""
        try:
            owner_id = resolve_owner(owner_id, self.identity)
        except NotSignedInError as e:
            self.error = e.message
            return self.images
        self.owner_id = owner_id

        self._issued += 1
        seq = self._issued
        self._in_flight += 1
        try:
            records = await self.api.query_by_owner(owner_id)
        except (ServiceRequestError, httpx.HTTPError) as e:
            if self.discard_stale_loads and seq < self._applied:
                log.debug("Ignoring failure of stale load %d (applied %d): %s", seq, self._applied, e)
                return self.images
            log.error("Loading images for %s failed: %s", owner_id, e)
            self.error = LOAD_FAILED
            return self.images
        finally:
            self._in_flight -= 1

        if self.discard_stale_loads and seq < self._applied:
            log.debug("Discarding stale load %d (applied %d)", seq, self._applied)
            return self.images
        self._applied = seq
        self.images = records
        self.error = None
        return self.images

    async def retry(self) -> List[ImageRecord]:
        return await self.load(self.owner_id)

    async def _on_refresh(self, event: Event):
        await self.load(event.owner_id or self.owner_id)

    # -------------------------
    # Filter
    # -------------------------
    def apply_filter(self, term: str) -> List[ImageRecord]:
        """Filters the cached set by tag substring. Never touches the network."""
        self.filter_text = term or ""
        return self.filtered

    # -------------------------
    # Delete
    # -------------------------
    def request_delete(self, image_id: str) -> bool:
        """Moves a card to the confirming state."""
        if image_id in self.deleting or self.find(image_id) is None:
            return False
        self.pending_confirmation = image_id
        return True

    def cancel_delete(self):
        self.pending_confirmation = None

    async def confirm_delete(self, owner_id: Optional[str] = None) -> DeleteOutcome:
        image_id = self.pending_confirmation
        if image_id is None:
            return DeleteOutcome(False, None, "Nothing to delete.", performed=False)
        self.pending_confirmation = None
        if image_id in self.deleting:
            return DeleteOutcome(False, image_id, "Delete already in progress.", performed=False)

        try:
            owner_id = resolve_owner(owner_id or self.owner_id, self.identity)
        except NotSignedInError as e:
            self.error = e.message
            return DeleteOutcome(False, image_id, e.message, performed=False)

        self.deleting.add(image_id)
        try:
            await self.api.delete_record(image_id, owner_id)
        except (ServiceRequestError, httpx.HTTPError) as e:
            log.error("Deleting %s failed: %s", image_id, e)
            self.error = f"Failed to delete image: {getattr(e, 'detail', None) or e}"
            return DeleteOutcome(False, image_id, self.error)
        finally:
            self.deleting.discard(image_id)

        self.images = [img for img in self.images if img.image_id != image_id]
        self.message = "Image deleted successfully"
        self.error = None
        return DeleteOutcome(True, image_id, self.message)

    async def delete(self, image_id: str, owner_id: Optional[str], confirm: Confirm) -> DeleteOutcome:
        """Asks ``confirm`` first; only a confirmed delete reaches the network."""
        if not self.request_delete(image_id):
            return DeleteOutcome(False, image_id, "Image cannot be deleted right now.", performed=False)
        answer = confirm(self.find(image_id))
        if inspect.isawaitable(answer):
            answer = await answer
        if self.pending_confirmation != image_id:
            return DeleteOutcome(False, image_id, "Delete cancelled.", performed=False)
        if not answer:
            self.cancel_delete()
            return DeleteOutcome(False, image_id, "Delete cancelled.", performed=False)
        return await self.confirm_delete(owner_id)
