"""Tests for the tab store."""

from __future__ import annotations

import pytest

from scdesk.core.container import WebContainer
from scdesk.core.events import LocationChanged
from scdesk.core.tabs import DEFAULT_MAX_TABS, TabStore

HOME = "https://soundcloud.com"


@pytest.fixture
def surfaces():
    return []


@pytest.fixture
def store_factory(surfaces, surface_factory):
    def factory(url):
        surface = surface_factory()
        surfaces.append(surface)
        return WebContainer(surface, url)

    def build(**kwargs):
        return TabStore(factory, **kwargs)

    return build


class TestAddTab:
    def test_add_selects_new_tab(self, store_factory, surfaces):
        store = store_factory()
        first = store.add_tab(HOME)
        second = store.add_tab(HOME + "/a/b")

        assert store.tabs == [first, second]
        assert store.selected_tab is second
        assert surfaces[1].loaded == [HOME + "/a/b"]

    def test_ceiling_refuses_extra_tabs(self, store_factory):
        beeps = []
        store = store_factory(on_limit_reached=lambda: beeps.append(True))
        opened = [store.add_tab(f"{HOME}/{i}") for i in range(DEFAULT_MAX_TABS)]

        assert store.add_tab(HOME + "/extra") is None
        assert store.add_tab(HOME + "/extra2") is None
        assert store.tabs == opened
        assert store.selected_tab is opened[-1]
        assert len(beeps) == 2

    @pytest.mark.parametrize("calls", [1, 5, 10, 11, 25])
    def test_count_never_exceeds_ceiling(self, store_factory, calls):
        store = store_factory()
        for i in range(calls):
            store.add_tab(f"{HOME}/{i}")
            assert len(store) <= DEFAULT_MAX_TABS

    def test_container_new_tab_requests_route_back(self, store_factory, surfaces):
        store = store_factory()
        tab = store.add_tab(HOME)

        tab.container.request_new_surface(HOME + "/x/y")

        assert len(store) == 2
        assert store.selected_tab.initial_url == HOME + "/x/y"
        # the new tab's container can itself request further tabs
        store.selected_tab.container.request_new_surface(HOME + "/z")
        assert len(store) == 3

    def test_ids_are_unique(self, store_factory):
        store = store_factory()
        tabs = [store.add_tab(HOME) for _ in range(3)]
        assert len({tab.id for tab in tabs}) == 3


class TestCloseTab:
    def test_selection_moves_to_last_tab(self, store_factory):
        store = store_factory()
        first = store.add_tab(HOME)
        second = store.add_tab(HOME + "/2")
        third = store.add_tab(HOME + "/3")
        store.select_tab(second)

        assert store.close_tab(second)
        assert store.selected_tab is third
        assert store.tabs == [first, third]

    def test_closing_unselected_keeps_selection(self, store_factory):
        store = store_factory()
        first = store.add_tab(HOME)
        second = store.add_tab(HOME + "/2")

        store.close_tab(first)
        assert store.selected_tab is second

    def test_close_releases_container(self, store_factory, surfaces):
        store = store_factory()
        tab = store.add_tab(HOME)
        store.add_tab(HOME + "/2")

        store.close_tab(tab)

        assert surfaces[0].closed
        assert tab.container.closed

    def test_double_close_is_noop(self, store_factory):
        store = store_factory()
        tab = store.add_tab(HOME)
        store.add_tab(HOME + "/2")

        assert store.close_tab(tab) is True
        assert store.close_tab(tab) is False
        assert len(store) == 1

    def test_closing_last_tab_terminates(self, store_factory):
        emptied = []
        store = store_factory(on_empty=lambda: emptied.append(True))
        tab = store.add_tab(HOME)

        store.close_tab(tab)

        assert store.is_terminated
        assert store.selected_tab is None
        assert emptied == [True]
        assert store.add_tab(HOME) is None

    def test_close_selected(self, store_factory):
        store = store_factory()
        store.add_tab(HOME)
        second = store.add_tab(HOME + "/2")

        assert store.close_selected()
        assert second not in store


class TestSelection:
    def test_select_does_not_touch_containers(self, store_factory, surfaces):
        store = store_factory()
        first = store.add_tab(HOME)
        store.add_tab(HOME + "/2")

        assert store.select_tab(first)
        assert store.selected_tab is first
        assert all(len(surface.loaded) == 1 for surface in surfaces)
        assert all(not surface.calls for surface in surfaces)

    def test_select_closed_tab_is_refused(self, store_factory):
        store = store_factory()
        first = store.add_tab(HOME)
        second = store.add_tab(HOME + "/2")
        store.close_tab(first)

        assert store.select_tab(first) is False
        assert store.selected_tab is second

    def test_reselecting_is_not_a_change(self, store_factory):
        store = store_factory()
        tab = store.add_tab(HOME)
        assert store.select_tab(tab) is False

    def test_listeners_see_every_change(self, store_factory):
        store = store_factory()
        changes = []
        store.add_listener(lambda: changes.append(len(store)))

        first = store.add_tab(HOME)
        store.add_tab(HOME + "/2")
        store.select_tab(first)
        store.close_tab(first)

        assert changes == [1, 2, 2, 1]


class TestOpenCurrentInNewTab:
    def test_duplicates_current_url(self, store_factory, surfaces):
        store = store_factory()
        store.add_tab(HOME)
        surfaces[0].emit(LocationChanged(HOME + "/artist/track", "Track"))

        tab = store.open_current_in_new_tab()

        assert tab is not None
        assert tab.initial_url == HOME + "/artist/track"
        assert store.selected_tab is tab

    def test_without_tabs(self, store_factory):
        assert store_factory().open_current_in_new_tab() is None


class TestOpenWindow:
    def test_window_is_not_registered(self, store_factory):
        opened = []
        store = store_factory(window_opener=opened.append)
        tab = store.add_tab(HOME)

        tab.container.open_in_new_window(HOME + "/a/b")

        assert opened == [HOME + "/a/b"]
        assert len(store) == 1

    def test_without_opener(self, store_factory):
        store = store_factory()
        store.open_window(HOME)
        assert len(store) == 0
