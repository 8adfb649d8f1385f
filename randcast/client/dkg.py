import asyncio
import logging
from collections.abc import Sequence

from randcast.board import InMemoryBoard
from randcast.custom_types import DKGOutput, DKGTask, NodeID
from randcast.exceptions import DKGResultIncompatibilityError
from randcast.node.participant import Participant

logger = logging.getLogger(__name__)


class DKG:
    """Runs every participant's side of one DKG task concurrently against a shared board."""

    def __init__(
        self,
        participants: Sequence[Participant],
        task: DKGTask,
        board: InMemoryBoard | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.participants = participants
        self.task = task
        self.board = board or InMemoryBoard(node.index for node in task.members)
        self.loop = loop or asyncio.get_running_loop()

    def _check_result(self, result: dict[NodeID, DKGOutput]) -> None:
        if len({tuple(output.public_polynomial) for output in result.values()}) == 1:
            return
        raise DKGResultIncompatibilityError(
            "DKG failed: Public polynomials from nodes do not match. "
            "This indicates a potential security issue or node misconfiguration."
        )

    async def run(self) -> dict[NodeID, DKGOutput]:
        tasks = {
            participant.id: self.loop.create_task(participant.run_dkg(self.task, self.board))
            for participant in self.participants
        }
        result = {node_id: (await task) for node_id, task in tasks.items()}
        self._check_result(result)
        logger.info("DKG of group %s epoch %s produced a shared key", self.task.group_index, self.task.epoch)
        return result
