from collections.abc import Iterable

from randcast.custom_types import NodeID, TaskIndex

from .custom_types import RewardRecord


class RewardLedger:
    """Which nodes are credited for each fulfilled signature task."""

    def __init__(self) -> None:
        self._records: dict[TaskIndex, RewardRecord] = {}

    def record(self, task_index: TaskIndex, fulfiller: NodeID, partial_signers: Iterable[NodeID]) -> RewardRecord:
        record = RewardRecord(task_index=task_index, fulfiller=fulfiller, partial_signers=sorted(set(partial_signers)))
        self._records[task_index] = record
        return record

    def get(self, task_index: TaskIndex) -> RewardRecord | None:
        return self._records.get(task_index)

    def credits(self, node_id: NodeID) -> int:
        return sum(
            node_id == record.fulfiller or node_id in record.partial_signers for record in self._records.values()
        )
