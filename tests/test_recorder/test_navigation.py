"""Tests for navigation sources."""

import pytest

from site_visits.navigation import ManualNavigationSource, NavigationSource


def test_navigation_source_is_abstract():
    with pytest.raises(TypeError):
        NavigationSource()


def test_path_changed_only_fires_on_change():
    source = ManualNavigationSource("/")
    paths = []
    source.subscribe(paths.append)

    assert source.path_changed("/") is False
    assert source.path_changed("/docs") is True
    assert source.path_changed("/docs") is False
    assert paths == ["/docs"]


def test_history_popped_always_fires():
    source = ManualNavigationSource("/docs")
    paths = []
    source.subscribe(paths.append)
    source.history_popped("/docs")
    assert paths == ["/docs"]


def test_unsubscribe():
    source = ManualNavigationSource("/")
    paths = []
    unsubscribe = source.subscribe(paths.append)
    unsubscribe()
    source.path_changed("/other")
    assert paths == []
