from __future__ import annotations

import threading

import pytest

from rfs.guard import GlobalGuard, PathGuard, make_guard


def _hold_in_thread(guard, key, release: threading.Event) -> threading.Event:
    held = threading.Event()

    def run():
        with guard.hold(key):
            held.set()
            release.wait(5.0)

    threading.Thread(target=run, daemon=True).start()
    assert held.wait(2.0)
    return held


def _try_enter(guard, key) -> threading.Event:
    entered = threading.Event()

    def run():
        with guard.hold(key):
            entered.set()

    threading.Thread(target=run, daemon=True).start()
    return entered


def test_global_guard_blocks_unrelated_keys():
    guard = GlobalGuard()
    release = threading.Event()
    _hold_in_thread(guard, "a", release)
    entered = _try_enter(guard, "b")
    assert not entered.wait(0.2)
    release.set()
    assert entered.wait(2.0)


def test_path_guard_lets_unrelated_keys_through():
    guard = PathGuard()
    release = threading.Event()
    _hold_in_thread(guard, "a", release)
    assert _try_enter(guard, "b").wait(2.0)
    release.set()


def test_path_guard_serializes_same_key():
    guard = PathGuard()
    release = threading.Event()
    _hold_in_thread(guard, "a", release)
    entered = _try_enter(guard, "a")
    assert not entered.wait(0.2)
    release.set()
    assert entered.wait(2.0)


def test_path_guard_drops_idle_entries():
    guard = PathGuard()
    with guard.hold("a"):
        with guard.hold("b"):
            assert len(guard) == 2
    assert len(guard) == 0


def test_path_guard_releases_on_error():
    guard = PathGuard()
    with pytest.raises(RuntimeError):
        with guard.hold("a"):
            raise RuntimeError("boom")
    assert len(guard) == 0
    with guard.hold("a"):
        pass


def test_make_guard():
    assert isinstance(make_guard("global"), GlobalGuard)
    assert isinstance(make_guard("path"), PathGuard)
    with pytest.raises(ValueError):
        make_guard("rw")
