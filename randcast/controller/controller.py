"""
Coordination state machine standing in for the on-chain randomness contract.

Groups move ``Forming -> DKGRequested -> Committing -> Available``; signature tasks move
``Pending -> Fulfilled`` (or ``Pending -> Expired`` when nobody fulfills them in time).
Every transition validates its preconditions and returns an ``Outcome``. Harmless repeats
come back as ``Outcome.DUPLICATE``; calls that reveal a faulty participant come back as
``Outcome.FAULTY`` or ``Outcome.CONFLICT`` and are the only ones that touch group membership.
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Iterable, Mapping

from randcast.curve import g1_from_hex, g1_to_hex
from randcast.custom_types import (
    AggregatedSignature,
    DKGCommitment,
    DKGTask,
    Group,
    GroupIndex,
    GroupState,
    HexStr,
    Node,
    NodeID,
    NodeInfo,
    Outcome,
    PartialSignature,
    RandomnessOutput,
    SignatureTask,
    SignatureTaskState,
    TaskIndex,
)
from randcast.exceptions import (
    DeserializationError,
    GroupNotFoundError,
    NoOutputAvailableError,
    NoPendingTaskError,
    TaskNotFoundError,
)
from randcast.sig import verify
from randcast.utils import derive_message, derive_randomness

from .rewards import RewardLedger
from .settings import ControllerSettings

logger = logging.getLogger(__name__)


def _canonical_g1(data: HexStr) -> HexStr | None:
    try:
        return g1_to_hex(g1_from_hex(data))
    except DeserializationError:
        return None


class Controller:
    def __init__(self, settings: ControllerSettings | None = None, clock: Callable[[], float] = time.monotonic):
        self.settings = settings or ControllerSettings()
        self.rewards = RewardLedger()
        self._clock = clock
        self._lock = threading.RLock()

        self._nodes: dict[NodeID, NodeInfo] = {}
        self._groups: dict[GroupIndex, Group] = {}
        self._forming: GroupIndex | None = None
        self._available: list[GroupIndex] = []
        self._dkg_queue: deque[GroupIndex] = deque()
        self._dkg_deadlines: dict[GroupIndex, float] = {}
        self._commitments: dict[GroupIndex, dict[NodeID, DKGCommitment]] = {}

        self._tasks: dict[TaskIndex, SignatureTask] = {}
        self._signature_queue: deque[TaskIndex] = deque()
        self._task_deadlines: dict[TaskIndex, float] = {}
        self._last_output: RandomnessOutput | None = None

    def _forming_group(self) -> Group:
        if self._forming is None:
            index = len(self._groups) + 1
            self._groups[index] = Group(index=index, size=self.settings.GROUP_SIZE, threshold=self.settings.THRESHOLD)
            self._forming = index
        return self._groups[self._forming]

    def _commit_quorum(self, group: Group) -> int:
        return group.size if self.settings.COMMIT_QUORUM == "all" else group.threshold

    def register(self, node_id: NodeID, dkg_public_key: HexStr, url: str = "", signing_address: str = "") -> Outcome:
        with self._lock:
            if node_id in self._nodes:
                logger.warning("Node %s is already registered", node_id)
                return Outcome.REJECTED
            canonical_key = _canonical_g1(dkg_public_key)
            if canonical_key is None:
                logger.warning("Node %s registered an invalid DKG public key", node_id)
                return Outcome.REJECTED
            if any(info.dkg_public_key == canonical_key for info in self._nodes.values()):
                logger.warning("Node %s registered a DKG public key that is already in use", node_id)
                return Outcome.REJECTED

            group = self._forming_group()
            group.members.append(Node(index=len(group.members), id=node_id, public_key=canonical_key))
            self._nodes[node_id] = NodeInfo(
                id=node_id, dkg_public_key=canonical_key, url=url, signing_address=signing_address
            )
            logger.info("Node %s registered to group %s at index %s", node_id, group.index, len(group.members) - 1)

            if group.is_full:
                group.state = GroupState.DKG_REQUESTED
                self._dkg_queue.append(group.index)
                self._forming = None
                logger.info("Group %s is complete, DKG requested for epoch %s", group.index, group.epoch)
            return Outcome.ACCEPTED

    def emit_dkg_task(self) -> DKGTask:
        with self._lock:
            if not self._dkg_queue:
                raise NoPendingTaskError("No DKG task is waiting to be emitted")
            group = self._groups[self._dkg_queue.popleft()]
            group.state = GroupState.COMMITTING
            self._commitments[group.index] = {}
            self._dkg_deadlines[group.index] = self._clock() + self.settings.DKG_COMMIT_TIMEOUT
            return DKGTask(
                group_index=group.index,
                epoch=group.epoch,
                size=group.size,
                threshold=group.threshold,
                members=list(group.members),
            )

    def commit_dkg(
        self,
        node_id: NodeID,
        group_index: GroupIndex,
        epoch: int,
        public_key: HexStr,
        partial_public_key: HexStr,
        disqualified: Iterable[NodeID] = (),
    ) -> Outcome:
        canonical_key = _canonical_g1(public_key)
        canonical_partial_key = _canonical_g1(partial_public_key)
        commitment = DKGCommitment(
            node_id=node_id,
            public_key=canonical_key or public_key,
            partial_public_key=canonical_partial_key or partial_public_key,
            disqualified=tuple(sorted(set(disqualified))),
        )
        with self._lock:
            group = self._groups.get(group_index)
            if group is None or group.member(node_id) is None:
                logger.warning("Node %s committed to group %s it is not a member of", node_id, group_index)
                return Outcome.REJECTED

            existing = self._commitments.get(group_index, {}).get(node_id)
            if existing is not None and epoch == group.epoch:
                if existing == commitment:
                    return Outcome.DUPLICATE
                logger.warning("Node %s changed its DKG commitment for group %s", node_id, group_index)
                self._mark_faulty(group, node_id)
                return Outcome.FAULTY

            if group.state != GroupState.COMMITTING:
                return Outcome.REJECTED
            if epoch != group.epoch:
                logger.warning(
                    "Node %s committed for epoch %s, group %s is at %s", node_id, epoch, group_index, group.epoch
                )
                return Outcome.REJECTED
            if canonical_key is None or canonical_partial_key is None:
                self._mark_faulty(group, node_id)
                return Outcome.FAULTY

            commitments = self._commitments[group_index]
            commitments[node_id] = commitment
            buckets: dict[HexStr, list[DKGCommitment]] = {}
            for other in commitments.values():
                buckets.setdefault(other.public_key, []).append(other)
            if len(buckets[canonical_key]) >= self._commit_quorum(group):
                self._make_available(group, buckets[canonical_key])

            # largest bucket leads, ties go to the key committed first
            leading = max(buckets, key=lambda key: len(buckets[key]))
            if leading != canonical_key:
                logger.warning("Node %s committed a public key conflicting with group %s", node_id, group_index)
                return Outcome.CONFLICT
            return Outcome.ACCEPTED

    def _mark_faulty(self, group: Group, node_id: NodeID) -> None:
        if group.state == GroupState.COMMITTING and node_id not in group.faulty:
            group.faulty.append(node_id)

    def _make_available(self, group: Group, bucket: list[DKGCommitment]) -> None:
        committed = {commitment.node_id: commitment for commitment in bucket}
        group.committers = [node.id for node in group.members if node.id in committed]
        group.public_key = bucket[0].public_key
        group.partial_public_keys = {node_id: c.partial_public_key for node_id, c in committed.items()}
        group.disqualified = sorted({node_id for commitment in bucket for node_id in commitment.disqualified})
        for node_id in self._commitments[group.index]:
            if node_id not in committed and node_id not in group.faulty:
                group.faulty.append(node_id)
        group.state = GroupState.AVAILABLE
        self._dkg_deadlines.pop(group.index, None)
        self._available.append(group.index)
        logger.info("Group %s is available with %s committers", group.index, len(group.committers))

    def restart_dkg(self, group_index: GroupIndex) -> None:
        """Abandon the current DKG round of a group and request a new one with the next epoch."""
        with self._lock:
            group = self._groups.get(group_index)
            if group is None or group.state not in (GroupState.DKG_REQUESTED, GroupState.COMMITTING):
                raise GroupNotFoundError(f"Group {group_index} has no DKG round to restart")
            group.epoch += 1
            group.state = GroupState.DKG_REQUESTED
            group.faulty = []
            self._commitments.pop(group_index, None)
            self._dkg_deadlines.pop(group_index, None)
            if group_index not in self._dkg_queue:
                self._dkg_queue.append(group_index)
            logger.warning("DKG of group %s restarted with epoch %s", group_index, group.epoch)

    def expire_stale(self) -> None:
        """Restart DKG rounds and expire signature tasks whose deadline has passed."""
        with self._lock:
            now = self._clock()
            for group_index, deadline in list(self._dkg_deadlines.items()):
                if deadline <= now:
                    self.restart_dkg(group_index)
            for task_index, deadline in list(self._task_deadlines.items()):
                if deadline <= now:
                    self._tasks[task_index].state = SignatureTaskState.EXPIRED
                    del self._task_deadlines[task_index]
                    if task_index in self._signature_queue:
                        self._signature_queue.remove(task_index)
                    logger.warning("Signature task %s expired", task_index)

    def get_group(self, group_index: GroupIndex) -> Group:
        with self._lock:
            group = self._groups.get(group_index)
            if group is None or group.state == GroupState.FORMING:
                raise GroupNotFoundError(f"Group {group_index} is not found")
            return group.model_copy(deep=True)

    def request(self, seed: str) -> Outcome:
        with self._lock:
            if not self._available:
                logger.warning("Randomness requested before any group is available")
                return Outcome.REJECTED
            index = len(self._tasks)
            if self._last_output is None:
                entropy = self.settings.INITIAL_ENTROPY.to_bytes(32, "big")
            else:
                entropy = bytes.fromhex(self._last_output.value)
            task = SignatureTask(
                index=index,
                group_index=self._available[-1],
                seed=seed,
                message=derive_message(seed, index, entropy),
            )
            self._tasks[index] = task
            self._signature_queue.append(index)
            self._task_deadlines[index] = self._clock() + self.settings.SIGNATURE_TASK_TIMEOUT
            logger.info("Signature task %s created for group %s", index, task.group_index)
            return Outcome.ACCEPTED

    def emit_signature_task(self) -> SignatureTask:
        with self._lock:
            if not self._signature_queue:
                raise NoPendingTaskError("No signature task is waiting to be emitted")
            return self._tasks[self._signature_queue.popleft()].model_copy()

    def get_signature_task(self, index: TaskIndex) -> SignatureTask:
        with self._lock:
            task = self._tasks.get(index)
            if task is None:
                raise TaskNotFoundError(f"Signature task {index} is not found")
            return task.model_copy()

    def fulfill(
        self,
        node_id: NodeID,
        index: TaskIndex,
        signature: AggregatedSignature,
        partial_signatures: Mapping[NodeID, PartialSignature],
    ) -> Outcome:
        with self._lock:
            task = self._tasks.get(index)
            if task is None or task.state == SignatureTaskState.EXPIRED:
                return Outcome.REJECTED
            if task.state == SignatureTaskState.FULFILLED:
                return Outcome.DUPLICATE
            group = self._groups[task.group_index]
            if node_id not in group.committers:
                logger.warning("Node %s is not a committer of group %s", node_id, group.index)
                return Outcome.REJECTED
            assert group.public_key is not None, "Available group without public key"
            if not verify(group.public_key, bytes.fromhex(task.message), signature):
                logger.warning("Node %s fulfilled task %s with an invalid signature", node_id, index)
                return Outcome.FAULTY

            task.state = SignatureTaskState.FULFILLED
            self._task_deadlines.pop(index, None)
            if index in self._signature_queue:
                self._signature_queue.remove(index)
            self._last_output = RandomnessOutput(
                task_index=index, signature=signature, value=derive_randomness(signature)
            )
            self.rewards.record(
                index, fulfiller=node_id, partial_signers=(n for n in partial_signatures if n in group.committers)
            )
            logger.info("Signature task %s fulfilled by node %s", index, node_id)
            return Outcome.ACCEPTED

    def get_last_output(self) -> RandomnessOutput:
        with self._lock:
            if self._last_output is None:
                raise NoOutputAvailableError("No output available")
            return self._last_output.model_copy()
