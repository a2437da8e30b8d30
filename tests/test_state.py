from afkmover.core.models import Client
from afkmover.core.state import StateStore

NOW = 1_700_000_000


def test_recent_join_window_is_ten_seconds():
    state = StateStore()
    state.record_join(5, NOW)

    assert state.is_recent_join(5, NOW)
    assert state.is_recent_join(5, NOW + 9)
    assert not state.is_recent_join(5, NOW + 10)
    assert not state.is_recent_join(6, NOW)


def test_solo_flags():
    state = StateStore()
    assert not state.is_solo(1)

    state.mark_solo(1)
    assert state.is_solo(1)

    state.clear_solo(1)
    state.clear_solo(1)
    assert not state.is_solo(1)


def test_first_snapshot_only_seeds_memberships():
    state = StateStore()
    joined = state.observe_memberships([Client(1, "a", 7), Client(2, "b", 8)], NOW)

    assert joined == set()
    assert state.recent_join == {}
    assert state.last_seen == {1: 7, 2: 8}


def test_switch_and_connect_count_as_joins():
    state = StateStore()
    state.observe_memberships([Client(1, "a", 7), Client(2, "b", 8)], NOW)

    joined = state.observe_memberships([Client(1, "a", 8), Client(2, "b", 8), Client(3, "c", 9)], NOW + 10)

    assert joined == {8, 9}
    assert state.is_recent_join(8, NOW + 10)
    assert not state.is_recent_join(7, NOW + 10)


def test_leaving_drops_solo_flag_and_stale_joins_are_pruned():
    state = StateStore()
    state.observe_memberships([Client(1, "a", 7)], NOW)
    state.mark_solo(1)
    state.record_join(7, NOW)

    state.observe_memberships([], NOW + 30)

    assert not state.is_solo(1)
    assert state.recent_join == {}


def test_independent_stores_share_nothing():
    a, b = StateStore(), StateStore()
    a.mark_solo(1)
    a.record_join(7, NOW)

    assert not b.is_solo(1)
    assert not b.is_recent_join(7, NOW)


def test_join_window_uses_fractional_seconds():
    state = StateStore()
    state.record_join(5, 100.9)

    assert state.is_recent_join(5, 110.5)
    assert not state.is_recent_join(5, 110.9)
