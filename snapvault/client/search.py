from typing import Callable, Optional
import logging

from snapvault.client.history import RecentSearches
from snapvault.client.scheduling import Scheduler
from snapvault.settings import settings

log = logging.getLogger(__name__)

class SearchInputController:
    """Turns keystrokes into filter-change events.

    Typing schedules an emission after a quiet period; every keystroke
    cancels the pending one, so only the latest text is emitted. Submit and
    clear emit right away.
    """
    def __init__(
        self,
        scheduler: Scheduler,
        on_filter: Callable[[str], object],
        history: Optional[RecentSearches] = None,
        quiet_period: Optional[float] = None,
    ):
        self.scheduler = scheduler
        self.on_filter = on_filter
        self.history = history
        self.quiet_period = quiet_period if quiet_period is not None else settings.search_debounce_ms / 1000
        self.text = ""
        self._pending: Optional[int] = None

    def _cancel_pending(self):
        if self._pending is not None:
            self.scheduler.cancel(self._pending)
            self._pending = None

    def _emit(self, term: str):
        self._pending = None
        self.on_filter(term)
        if self.history is not None and term.strip():
            self.history.add(term)

    def on_input(self, text: str):
        self.text = text
        self._cancel_pending()
        if not text.strip():
            self._emit("")
            return
        self._pending = self.scheduler.schedule(self.quiet_period, lambda: self._emit(text))

    def submit(self):
        self._cancel_pending()
        self._emit(self.text)

    def clear(self):
        self.text = ""
        self._cancel_pending()
        self._emit("")

    def select_recent(self, term: str):
        """Re-runs a term picked from the recent searches list."""
        self.text = term
        self.submit()
