from pathlib import Path
from typing import List, Optional
import json
import logging

from snapvault.settings import settings

log = logging.getLogger(__name__)

class RecentSearches:
    """Most recent search terms, newest first, kept in a local JSON file.

    The file may hold other client state; this class only owns the entry
    under ``namespace``.
    """
    def __init__(self, path: Optional[str] = None, namespace: Optional[str] = None, limit: Optional[int] = None):
        self.path = Path(path or settings.recent_searches_path).expanduser()
        self.namespace = namespace or settings.recent_searches_namespace
        self.limit = limit or settings.recent_searches_limit
        self.terms: List[str] = []

    def _read_store(self) -> dict:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable local storage %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self):
        store = self._read_store()
        store[self.namespace] = self.terms
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(store, f, indent=2)

    def load(self) -> List[str]:
        raw = self._read_store().get(self.namespace) or []
        self.terms = [t for t in raw if isinstance(t, str) and t.strip()][: self.limit]
        return self.terms

    def add(self, term: str) -> List[str]:
        term = term.strip()
        if not term:
            return self.terms
        self.terms = [term] + [t for t in self.terms if t != term]
        self.terms = self.terms[: self.limit]
        self._write()
        return self.terms

    def clear(self):
        self.terms = []
        self._write()
