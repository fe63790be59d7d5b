# File: tests/test_lifecycle.py
from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio

from swipe_deck.errors import InvalidRange, StoreError
from swipe_deck.lifecycle import LifecycleCoordinator, ScenePhase
from swipe_deck.models import SeedPage


async def drain() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


@pytest_asyncio.fixture
async def coordinator(registry, cache, store) -> LifecycleCoordinator:
    for url in ("a.com", "b.com", "c.com", "d.com"):
        registry.add(url)
    return LifecycleCoordinator(registry, cache, store, preload_radius=1)


@pytest.mark.asyncio()
async def test_became_active_warms_every_page_in_order(coordinator, engine):
    coordinator.on_became_active()
    await drain()

    warmed = [s.navigations[0] for s in engine.sessions]
    assert warmed == ["https://a.com", "https://b.com", "https://c.com", "https://d.com"]


@pytest.mark.asyncio()
async def test_became_active_twice_creates_no_duplicates(coordinator, engine):
    coordinator.on_became_active()
    await drain()
    coordinator.handle_phase(ScenePhase.ACTIVE)
    await drain()
    assert len(engine.sessions) == 4


@pytest.mark.asyncio()
async def test_background_keeps_sessions(coordinator, cache, engine):
    coordinator.on_became_active()
    await drain()
    coordinator.handle_phase(ScenePhase.BACKGROUND)
    coordinator.handle_phase(ScenePhase.INACTIVE)

    assert len(cache) == 4
    assert not any(s.closed for s in engine.sessions)


@pytest.mark.asyncio()
async def test_restore_last_index(coordinator, store):
    store.last_index = 2
    assert coordinator.on_became_active() == 2
    assert coordinator.current_index == 2


@pytest.mark.asyncio()
@pytest.mark.parametrize("stored", [None, -1, 4, 99])
async def test_restore_out_of_range_gives_zero(coordinator, store, stored):
    store.last_index = stored
    assert coordinator.restore_last_index() == 0


@pytest.mark.asyncio()
async def test_restore_with_unreadable_state(coordinator, store, monkeypatch):
    def broken():
        raise StoreError("locked")

    monkeypatch.setattr(store, "load_last_index", broken)
    assert coordinator.restore_last_index() == 0


@pytest.mark.asyncio()
async def test_show_displays_and_warms_neighbours(coordinator, cache, store):
    handle = coordinator.show(1)
    await drain()

    assert handle.navigations == ["https://b.com"]
    assert sorted(cache.keys()) == ["https://a.com", "https://b.com", "https://c.com"]
    assert store.last_index == 1
    assert coordinator.current_index == 1


@pytest.mark.asyncio()
async def test_show_with_radius_two(registry, cache, store):
    for url in ("a.com", "b.com", "c.com", "d.com", "e.com"):
        registry.add(url)
    coordinator = LifecycleCoordinator(registry, cache, store, preload_radius=2)
    coordinator.show(0)
    await drain()
    assert sorted(cache.keys()) == ["https://a.com", "https://b.com", "https://c.com"]


@pytest.mark.asyncio()
async def test_show_out_of_range(coordinator):
    with pytest.raises(InvalidRange):
        coordinator.show(4)


@pytest.mark.asyncio()
async def test_index_persisted_across_restart(coordinator, registry, cache, store):
    coordinator.show(3)
    restarted = LifecycleCoordinator(registry, cache, store)
    assert restarted.on_became_active() == 3


@pytest.mark.asyncio()
async def test_add_page_shows_new_page(coordinator, engine, store):
    page = coordinator.add_page("e.com")
    await drain()

    assert coordinator.current_index == 4
    assert store.last_index == 4
    assert any(s.navigations == [page.address] for s in engine.sessions)


@pytest.mark.asyncio()
async def test_remove_page_clamps_index(coordinator, registry, store):
    coordinator.show(3)
    coordinator.remove_page(registry.list()[3].id)
    assert coordinator.current_index == 2
    assert store.last_index == 2


@pytest.mark.asyncio()
async def test_delete_everything_restores_zero(coordinator, registry, store):
    coordinator.show(2)
    for page in registry.list():
        coordinator.remove_page(page.id)

    assert registry.list() == ()
    assert coordinator.current_index == 0
    assert coordinator.restore_last_index() == 0
    assert coordinator.current_page() is None


@pytest.mark.asyncio()
async def test_move_page_keeps_displayed_page(coordinator, registry):
    coordinator.show(0)
    shown = coordinator.current_page()
    coordinator.move_page(shown.id, 3)

    assert coordinator.current_index == 3
    assert coordinator.current_page().id == shown.id


@pytest.mark.asyncio()
async def test_reset_clears_cache_and_reseeds(coordinator, registry, cache, engine, store):
    coordinator.on_became_active()
    await drain()
    old_sessions = list(engine.sessions)
    coordinator.show(2)

    coordinator.reset([SeedPage(url="https://one.example", title="One")])
    await drain()

    assert all(s.closed for s in old_sessions)
    assert [p.address for p in registry.list()] == ["https://one.example"]
    assert cache.keys() == ["https://one.example"]
    assert store.last_index == 0
