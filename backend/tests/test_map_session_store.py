"""Test the in-memory map session registry."""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import MagicMock

import pytest

from services.map_session_store import MapSessionStore, SessionNotFoundError


def _factory():
    return lambda sid: MagicMock(session_id=sid)


def test_create_and_get():
    store = MapSessionStore(controller_factory=_factory(), max_sessions=5)
    controller = store.create()

    assert store.get(controller.session_id) is controller
    assert len(store) == 1


def test_unknown_session():
    store = MapSessionStore(controller_factory=_factory(), max_sessions=5)
    with pytest.raises(SessionNotFoundError):
        store.get("missing")


def test_least_recently_used_is_evicted():
    store = MapSessionStore(controller_factory=_factory(), max_sessions=2)
    first = store.create()
    second = store.create()

    store.get(first.session_id)   # first is now most recent
    store.create()

    assert len(store) == 2
    assert store.get(first.session_id) is first
    with pytest.raises(SessionNotFoundError):
        store.get(second.session_id)
