"""Tests for chain management."""

import pytest

from btv.chains import ChainStore
from btv.chains.store import calculate_chain_ripeness, update_all_chain_ripeness
from btv.errors import ChainError
from btv.models import Chain


def test_create_and_lookup():
    store = ChainStore()
    chain = store.create("Retry work", ["b1", "b2"])
    assert chain.id.startswith("chain-")
    assert store.get(chain.id) is chain
    assert store.get_by_name("Retry work") is chain
    assert store.get("chain-missing") is None
    assert [c.id for c in store.chains_for_beat("b2")] == [chain.id]

    with pytest.raises(ChainError):
        store.create("")


def test_add_and_remove_beats():
    store = ChainStore()
    chain = store.create("Thread")
    store.add_beat(chain.id, "b1")
    store.add_beat(chain.id, "b2")
    store.add_beat(chain.id, "b1")
    assert chain.beat_ids == ["b1", "b2"]

    store.remove_beat(chain.id, "b1")
    assert chain.beat_ids == ["b2"]
    assert store.chains_for_beat("b1") == []

    with pytest.raises(ChainError, match="beat not in chain"):
        store.remove_beat(chain.id, "b1")
    with pytest.raises(ChainError, match="chain not found"):
        store.add_beat("chain-missing", "b1")


def test_rename_and_delete():
    store = ChainStore()
    chain = store.create("Old", ["b1"])
    store.rename(chain.id, "New")
    assert store.get_by_name("New") is chain
    with pytest.raises(ChainError):
        store.rename(chain.id, "")

    store.delete(chain.id)
    assert store.all_chains() == []
    assert store.chains_for_beat("b1") == []


def test_positions_and_neighbours():
    store = ChainStore([Chain(id="c1", name="x", beat_ids=["a", "b", "c"])])
    assert store.beat_position("c1", "b") == (1, 3)
    assert store.beat_position("c1", "z") == (-1, 3)
    assert store.beat_position("nope", "a") == (-1, 0)
    assert store.adjacent_beats("c1", "a") == ("", "b")
    assert store.adjacent_beats("c1", "b") == ("a", "c")
    assert store.adjacent_beats("c1", "c") == ("b", "")
    assert store.adjacent_beats("c1", "z") == ("", "")


def test_load_rebuilds_index():
    store = ChainStore()
    store.load([
        Chain(id="c1", name="x", beat_ids=["a", "b"]),
        Chain(id="c2", name="y", beat_ids=["b"]),
    ])
    assert [c.id for c in store.chains_for_beat("b")] == ["c1", "c2"]
    assert len(store.export()) == 2


def test_chain_ripeness():
    chain = Chain(id="c1", name="x", beat_ids=["a", "b", "gone"])
    assert calculate_chain_ripeness(chain, {"a": 0.2, "b": 0.6}) == pytest.approx(0.4)
    assert calculate_chain_ripeness(Chain(id="c2", name="y"), {"a": 0.2}) == 0

    update_all_chain_ripeness([chain], {"a": 1.0})
    assert chain.ripeness_score == 1.0
