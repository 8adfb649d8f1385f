from hashlib import sha256

import pytest

from randcast.curve import curve_order, scalar_to_hex
from randcast.custom_types import DKGTask, Node
from randcast.node.participant import Participant
from randcast.node.settings import NodeSettings
from randcast.repository import InMemoryRepository


def private_key(i: int) -> str:
    return scalar_to_hex(int.from_bytes(sha256(f"randcast-test-node-{i}".encode()).digest(), "big") % curve_order)


def node_settings(i: int, **kwargs) -> NodeSettings:
    return NodeSettings(ID="0x" + str(i), PRIVATE_KEY=private_key(i), SIGNING_ADDRESS="0x" + str(i), **kwargs)


@pytest.fixture
def make_participants():
    def _make(n: int, **settings_kwargs) -> list[Participant]:
        return [Participant(node_settings(i, **settings_kwargs), InMemoryRepository()) for i in range(n)]

    return _make


@pytest.fixture
def make_task():
    def _make(participants: list[Participant], threshold: int, group_index: int = 1, epoch: int = 1) -> DKGTask:
        members = [
            Node(index=i, id=participant.id, public_key=participant.key.public_key)
            for i, participant in enumerate(participants)
        ]
        return DKGTask(
            group_index=group_index, epoch=epoch, size=len(members), threshold=threshold, members=members
        )

    return _make
