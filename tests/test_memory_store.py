"""Tests for the optimizer memory store."""

import json

from config import DEFAULT_POLICY, MEMORY_CONFIG
from memory_store import MemoryStore, demand_similarity
from strategy import Strategy


def _context(**overrides):
    ctx = Strategy().demand_context()
    ctx.update(overrides)
    return ctx


def test_similarity_of_identical_contexts():
    """Identical demand contexts are fully similar."""
    assert demand_similarity(_context(), _context()) == 1.0


def test_similarity_drops_with_difference():
    """A shifted demand mean lowers similarity, and it never goes below zero."""
    shifted = _context(custom_demand_mean1=50.0)
    assert 0.0 < demand_similarity(_context(), shifted) < 0.95
    wild = {k: v * 100 for k, v in _context().items()}
    assert demand_similarity(_context(), wild) == 0.0


def test_missing_file_is_empty(tmp_path):
    """A store without a file has no records."""
    store = MemoryStore(tmp_path / "memory.json")
    assert store.load() == []
    assert store.top_policies() == []


def test_record_and_top_policies(tmp_path):
    """Recorded policies come back best first."""
    store = MemoryStore(tmp_path / "memory.json")
    for fitness in (100.0, 300.0, 200.0):
        policy = dict(DEFAULT_POLICY, loan_amount=int(fitness))
        assert store.record(policy, fitness, fitness, _context(), 10)

    top = store.top_policies(2, _context())
    assert [p["loan_amount"] for p in top] == [300, 200]
    assert store.stats()["total_runs"] == 3


def test_other_contexts_are_filtered(tmp_path):
    """Only similar demand contexts are returned when a context is given."""
    store = MemoryStore(tmp_path / "memory.json")
    store.record(DEFAULT_POLICY, 10.0, 10.0, _context(), 5)
    store.record(DEFAULT_POLICY, 20.0, 20.0, _context(custom_demand_mean1=80.0, custom_demand_mean2=90.0), 5)

    assert len(store.find_similar(_context())) == 1
    assert len(store.top_policies(10)) == 2


def test_quality_gate(tmp_path):
    """Once more than five records exist, weak results are rejected."""
    store = MemoryStore(tmp_path / "memory.json")
    for _ in range(6):
        store.record(DEFAULT_POLICY, 1000.0, 1000.0, _context(), 5)

    assert not store.record(DEFAULT_POLICY, 700.0, 700.0, _context(), 5)
    assert store.record(DEFAULT_POLICY, 800.0, 800.0, _context(), 5)
    assert len(store.load()) == 7


def test_records_capped_per_context(tmp_path):
    """Each demand context keeps only its best records."""
    cfg = dict(MEMORY_CONFIG, max_records_per_context=3, quality_min_records=100)
    store = MemoryStore(tmp_path / "memory.json", cfg=cfg)
    for fitness in (5.0, 1.0, 4.0, 2.0, 3.0):
        store.record(DEFAULT_POLICY, fitness, fitness, _context(), 5)

    assert sorted(r.fitness for r in store.load()) == [3.0, 4.0, 5.0]


def test_old_versions_are_pruned(tmp_path, logger):
    """Records from another simulator version are dropped on load."""
    path = tmp_path / "memory.json"
    store = MemoryStore(path, logger=logger)
    store.record(DEFAULT_POLICY, 10.0, 10.0, _context(), 5)
    data = json.loads(path.read_text())
    data["records"][0]["sim_version"] = "0.1"
    path.write_text(json.dumps(data))

    assert store.load() == []
    assert logger.count("memory_pruned") == 1


def test_unreadable_file(tmp_path, logger):
    """A corrupt file reads as empty and is reported."""
    path = tmp_path / "memory.json"
    path.write_text("{not json")
    store = MemoryStore(path, logger=logger)
    assert store.load() == []
    assert logger.count("memory_unreadable") == 1


def test_clear(tmp_path):
    """Clearing leaves an empty but valid file."""
    path = tmp_path / "memory.json"
    store = MemoryStore(path)
    store.record(DEFAULT_POLICY, 10.0, 10.0, _context(), 5)
    store.clear()
    assert store.load() == []
    assert json.loads(path.read_text())["sim_version"] == MEMORY_CONFIG["sim_version"]
