import pytest
from pydantic import ValidationError

from nocracy_sim.core.history import (
    SnapshotManager,
    SnapshotNotFoundError,
    snapshot_id_for_tick,
)
from nocracy_sim.data_access.models import HistorySnapshot, SimulationClock


def _snapshot(tick: int) -> HistorySnapshot:
    return HistorySnapshot(
        id=snapshot_id_for_tick(tick),
        tick=tick,
        timestamp=float(tick),
        clock=SimulationClock(tick=tick),
        population_total=50,
        currency_supply=100000.0,
        production_output=1000.0,
        inequality_index=0.25,
        taxation_level=0.15,
        agent_count=50,
        law_count=4,
    )


def test_snapshot_id_format() -> None:
    assert snapshot_id_for_tick(100) == "SNAP-00000064"


def test_manager_orders_newest_first_and_evicts_oldest() -> None:
    manager = SnapshotManager(capacity=3)
    for tick in (100, 200, 300, 400):
        manager.record(_snapshot(tick))

    assert len(manager) == 3
    assert [s.tick for s in manager.list()] == [400, 300, 200]
    with pytest.raises(SnapshotNotFoundError):
        manager.get(snapshot_id_for_tick(100))


def test_manager_range_is_inclusive() -> None:
    manager = SnapshotManager()
    for tick in (100, 200, 300, 400):
        manager.record(_snapshot(tick))

    assert [s.tick for s in manager.range(200, 300)] == [300, 200]
    assert manager.range(401, 500) == []
    assert manager.get("SNAP-000000C8").tick == 200


def test_snapshots_are_read_only() -> None:
    snapshot = _snapshot(100)
    with pytest.raises(ValidationError):
        snapshot.tick = 5


def test_manager_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        SnapshotManager(capacity=0)


def test_clear() -> None:
    manager = SnapshotManager()
    manager.record(_snapshot(100))
    manager.clear()
    assert manager.list() == []
    assert len(manager) == 0
