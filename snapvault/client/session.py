from typing import Any, Awaitable, Optional
import logging
import httpx

from snapvault.client.api import ImageAPIClient
from snapvault.client.events import EventChannel
from snapvault.client.gallery import GallerySynchronizer
from snapvault.client.history import RecentSearches
from snapvault.client.identity import IdentityProvider
from snapvault.client.scheduling import AsyncioScheduler, Scheduler
from snapvault.client.search import SearchInputController
from snapvault.client.uploader import UploadOrchestrator
from snapvault.settings import settings

log = logging.getLogger(__name__)

FATAL_MESSAGE = "Something went wrong. Please reload."

class GallerySession:
    """Wires the upload form, gallery and search box for one signed-in user."""
    def __init__(
        self,
        identity: IdentityProvider,
        http: Optional[httpx.AsyncClient] = None,
        scheduler: Optional[Scheduler] = None,
        history: Optional[RecentSearches] = None,
        discard_stale_loads: bool = True,
    ):
        self.identity = identity
        self.http = http or httpx.AsyncClient(base_url=settings.api_base_url)
        self.scheduler = scheduler or AsyncioScheduler()
        self.history = history if history is not None else RecentSearches()
        self.discard_stale_loads = discard_stale_loads
        self.fatal_error: Optional[str] = None
        self._build()

    def _build(self):
        self.api = ImageAPIClient(self.http)
        self.events = EventChannel()
        self.gallery = GallerySynchronizer(
            self.api, self.events, self.identity, discard_stale_loads=self.discard_stale_loads
        )
        self.uploader = UploadOrchestrator(self.api, self.events, self.identity)
        self.search = SearchInputController(self.scheduler, self.gallery.apply_filter, self.history)

    async def mount(self):
        self.history.load()
        await self.gallery.load()

    async def guard(self, action: Awaitable[Any]) -> Any:
        """Runs a UI action; an unexpected error leaves the session needing reload()."""
        try:
            return await action
        except Exception:
            log.exception("Unexpected error in UI action")
            self.fatal_error = FATAL_MESSAGE
            return None

    async def reload(self):
        """Discards all component state and mounts again."""
        self.fatal_error = None
        self._build()
        await self.mount()

    async def aclose(self):
        await self.http.aclose()
