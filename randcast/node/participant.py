import logging
from collections.abc import Mapping

from randcast.board import InMemoryBoard
from randcast.controller.controller import Controller
from randcast.curve import g1_to_hex
from randcast.custom_types import (
    AggregatedSignature,
    DKGOutput,
    DKGTask,
    Group,
    GroupState,
    NodeID,
    Outcome,
    PartialSignature,
    SignatureTask,
    eval_point,
)
from randcast.key import KeyPair
from randcast.poly import PublicPolynomial

from .dkg import DKG, Phase3
from .repository import KeyRepository, output_key
from .settings import NodeSettings
from .sign import partial_sign

logger = logging.getLogger(__name__)


def session_id(task: DKGTask) -> bytes:
    return f"randcast-dkg:{task.group_index}:{task.epoch}".encode()


class Participant:
    """One node: registers, runs its side of the DKG, commits the result and signs tasks."""

    def __init__(self, settings: NodeSettings, key_repository: KeyRepository):
        self.settings = settings
        self.key = KeyPair(settings.PRIVATE_KEY)
        self.key_repository = key_repository

    @property
    def id(self) -> NodeID:
        return self.settings.ID

    def register(self, controller: Controller) -> Outcome:
        return controller.register(self.id, self.key.public_key, self.settings.URL, self.settings.SIGNING_ADDRESS)

    async def run_dkg(self, task: DKGTask, board: InMemoryBoard) -> DKGOutput:
        group = Group(
            index=task.group_index,
            epoch=task.epoch,
            size=task.size,
            threshold=task.threshold,
            state=GroupState.COMMITTING,
            members=task.members,
        )
        phase0 = DKG(self.key, group, session_id=session_id(task), timeout=self.settings.ROUND_TIMEOUT)
        phase1 = await phase0.run(board)
        phase2 = await phase1.run(board)
        output = await phase2.run(board)
        match output:
            case Phase3():
                output = await output.run(board)
        self.key_repository.set(output_key(self.id, output.public_key), output.model_dump(mode="python"))
        return output

    def commit_dkg(self, controller: Controller, task: DKGTask, output: DKGOutput) -> Outcome:
        public_polynomial = PublicPolynomial.from_hex(output.public_polynomial)
        partial_public_key = g1_to_hex(public_polynomial.eval(eval_point(output.share.index)))
        disqualified = [node.id for node in task.members if node.index in output.disqualified]
        outcome = controller.commit_dkg(
            self.id, task.group_index, task.epoch, output.public_key, partial_public_key, disqualified
        )
        logger.debug("Node %s committed DKG result of group %s: %s", self.id, task.group_index, outcome)
        return outcome

    def partial_sign(self, task: SignatureTask, group: Group) -> PartialSignature:
        assert group.public_key is not None, "Group has no public key yet"
        return partial_sign(self.id, group.public_key, bytes.fromhex(task.message), self.key_repository)

    def fulfill(
        self,
        controller: Controller,
        task: SignatureTask,
        signature: AggregatedSignature,
        partial_signatures: Mapping[NodeID, PartialSignature],
    ) -> Outcome:
        return controller.fulfill(self.id, task.index, signature, partial_signatures)
