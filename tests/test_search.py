import asyncio
import json

import pytest

from snapvault.client.history import RecentSearches
from snapvault.client.scheduling import AsyncioScheduler, ManualScheduler
from snapvault.client.search import SearchInputController


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def history(tmp_path):
    return RecentSearches(path=str(tmp_path / "local_storage.json"), namespace="snapvault.recentSearches", limit=5)


@pytest.fixture
def controller(scheduler, emitted, history):
    return SearchInputController(scheduler, emitted.append, history=history, quiet_period=0.5)


# ------------------------------
# debounce
# ------------------------------

def test_emits_after_quiet_period(controller, scheduler, emitted):
    controller.on_input("ca")
    scheduler.advance(0.25)
    assert emitted == []
    scheduler.advance(0.25)
    assert emitted == ["ca"]


def test_keystroke_resets_timer(controller, scheduler, emitted):
    controller.on_input("c")
    scheduler.advance(0.25)
    controller.on_input("ca")
    scheduler.advance(0.25)
    controller.on_input("cat")
    scheduler.advance(0.25)
    assert emitted == []
    scheduler.advance(0.25)
    assert emitted == ["cat"]
    assert scheduler.pending == 0


def test_submit_bypasses_debounce(controller, scheduler, emitted):
    controller.on_input("dog")
    controller.submit()
    assert emitted == ["dog"]
    scheduler.advance(1)
    assert emitted == ["dog"]


def test_clearing_emits_immediately(controller, scheduler, emitted):
    controller.on_input("dog")
    controller.on_input("")
    assert emitted == [""]
    scheduler.advance(1)
    assert emitted == [""]

    controller.on_input("x")
    controller.clear()
    assert controller.text == ""
    assert emitted == ["", ""]


def test_feeds_gallery_filter(scheduler):
    from snapvault.client.gallery import GallerySynchronizer
    from snapvault.image_service.models import ImageRecord

    gallery = GallerySynchronizer(api=None)
    gallery.images = [
        ImageRecord(image_id="a", owner_id="u1", url="https://b/a", tags=["cat"]),
        ImageRecord(image_id="b", owner_id="u1", url="https://b/b", tags=["dog"]),
    ]
    controller = SearchInputController(scheduler, gallery.apply_filter, quiet_period=0.5)
    controller.on_input("Do")
    scheduler.advance(0.5)
    assert [img.image_id for img in gallery.filtered] == ["b"]


@pytest.mark.asyncio
async def test_asyncio_scheduler_fires_latest_only():
    emitted = []
    controller = SearchInputController(AsyncioScheduler(), emitted.append, quiet_period=0.01)
    controller.on_input("b")
    controller.on_input("be")
    await asyncio.sleep(0.05)
    assert emitted == ["be"]


# ------------------------------
# recent searches
# ------------------------------

def test_history_records_emitted_terms(controller, scheduler, history):
    controller.on_input("cat")
    scheduler.advance(0.5)
    controller.on_input("dog")
    controller.submit()
    controller.on_input("cat")
    controller.submit()
    assert history.terms == ["cat", "dog"]

    with open(history.path) as f:
        assert json.load(f) == {"snapvault.recentSearches": ["cat", "dog"]}


def test_history_is_bounded(history):
    for i in range(8):
        history.add(f"t{i}")
    assert history.terms == ["t7", "t6", "t5", "t4", "t3"]


def test_history_survives_reload_and_keeps_other_keys(history):
    history.path.write_text(json.dumps({"other": 1, "snapvault.recentSearches": ["beach"]}))
    assert history.load() == ["beach"]
    history.add("sunset")

    reloaded = RecentSearches(path=str(history.path), namespace=history.namespace)
    assert reloaded.load() == ["sunset", "beach"]
    assert json.loads(history.path.read_text())["other"] == 1


def test_history_clear(history):
    history.add("x")
    history.clear()
    assert history.terms == []
    assert RecentSearches(path=str(history.path)).load() == []


def test_history_ignores_corrupt_file(history):
    history.path.write_text("{not json")
    assert history.load() == []


def test_select_recent_searches_again(controller, emitted):
    controller.select_recent("beach")
    assert emitted == ["beach"]
    assert controller.text == "beach"


def test_default_quiet_period_from_settings(scheduler, emitted):
    controller = SearchInputController(scheduler, emitted.append)
    assert controller.quiet_period == pytest.approx(0.3)
