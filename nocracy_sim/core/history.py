"""周期性历史快照的有界存储。

快照按新到旧排列，超过容量时丢弃最旧的一条。快照模型本身是冻结的，
存入后不可修改。
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List

from ..data_access.models import HistorySnapshot

logger = logging.getLogger(__name__)


class SnapshotNotFoundError(KeyError):
    def __init__(self, snapshot_id: str) -> None:
        super().__init__(f"Snapshot {snapshot_id} not found")
        self.snapshot_id = snapshot_id


def snapshot_id_for_tick(tick: int) -> str:
    return f"SNAP-{tick:08X}"


class SnapshotManager:
    """内存中的快照环形缓冲区。"""

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._snapshots: Deque[HistorySnapshot] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._snapshots)

    def record(self, snapshot: HistorySnapshot) -> None:
        self._snapshots.appendleft(snapshot)
        logger.info("Recorded snapshot %s at tick %s", snapshot.id, snapshot.tick)

    def list(self) -> List[HistorySnapshot]:
        return list(self._snapshots)

    def get(self, snapshot_id: str) -> HistorySnapshot:
        for snapshot in self._snapshots:
            if snapshot.id == snapshot_id:
                return snapshot
        raise SnapshotNotFoundError(snapshot_id)

    def range(self, start_tick: int, end_tick: int) -> List[HistorySnapshot]:
        """返回 ``start_tick <= tick <= end_tick`` 的快照（新到旧）。"""
        return [s for s in self._snapshots if start_tick <= s.tick <= end_tick]

    def clear(self) -> None:
        self._snapshots.clear()


__all__ = ["SnapshotManager", "SnapshotNotFoundError", "snapshot_id_for_tick"]
