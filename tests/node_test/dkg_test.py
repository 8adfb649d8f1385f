import asyncio
from functools import reduce

import pytest

from randcast.board import InMemoryBoard
from randcast.client.dkg import DKG as ClientDKG
from randcast.curve import add, g1_from_hex, g1_mul_generator, g1_to_hex, scalar_from_hex, scalar_to_hex
from randcast.custom_types import (
    BoardRound,
    BundledJustification,
    BundledShares,
    DKGOutput,
    Group,
    GroupState,
    Justification,
    Node,
    eval_point,
)
from randcast.exceptions import InsufficientQualifiedDealersError, InvalidGroupError
from randcast.key import KeyPair
from randcast.node.dkg import DKG, Phase1, Phase2, Phase3
from randcast.node.repository import output_key
from randcast.poly import PublicPolynomial


def joint_public_key(participants) -> str:
    return g1_to_hex(reduce(add, (g1_from_hex(participant.key.public_key) for participant in participants)))


def check_share(output: DKGOutput) -> bool:
    public_polynomial = PublicPolynomial.from_hex(output.public_polynomial)
    expected = public_polynomial.eval(eval_point(output.share.index))
    return g1_to_hex(g1_mul_generator(scalar_from_hex(output.share.value))) == g1_to_hex(expected)


class TamperingBoard(InMemoryBoard):
    """Corrupts what ``dealer`` sends to ``victim`` before it reaches the other nodes."""

    def __init__(self, senders, dealer: int, victim: int, corrupt_justification: bool = False):
        super().__init__(senders)
        self.dealer = dealer
        self.victim = victim
        self.corrupt_justification = corrupt_justification

    def _corrupt_shares(self, payload: BundledShares) -> BundledShares:
        shares = []
        for share in payload.shares:
            if share.recipient == self.victim:
                flipped = "00" if share.ciphertext[:2] != "00" else "01"
                share = share.model_copy(update={"ciphertext": flipped + share.ciphertext[2:]})
            shares.append(share)
        return payload.model_copy(update={"shares": shares})

    def publish(self, round_, sender, payload):
        if sender == self.dealer and round_ == BoardRound.SHARES:
            payload = self._corrupt_shares(payload)
        if sender == self.dealer and round_ == BoardRound.JUSTIFICATIONS and self.corrupt_justification:
            payload = BundledJustification(
                dealer=sender,
                justifications=[
                    Justification(share_holder=j.share_holder, share=scalar_to_hex(1)) for j in payload.justifications
                ],
            )
        super().publish(round_, sender, payload)


@pytest.mark.asyncio
@pytest.mark.parametrize("threshold, size", [(1, 1), (1, 3), (2, 3), (3, 5), (4, 4)])
async def test_dkg_agrees_on_public_key(threshold, size, make_participants, make_task):
    participants = make_participants(size)
    task = make_task(participants, threshold)

    result = await ClientDKG(participants, task).run()

    assert len(result) == size
    outputs = list(result.values())
    assert all(output.public_key == joint_public_key(participants) for output in outputs)
    assert all(len(output.public_polynomial) == threshold for output in outputs)
    assert all(output.qualified == list(range(size)) and not output.disqualified for output in outputs)
    assert all(check_share(output) for output in outputs)
    for participant in participants:
        stored = participant.key_repository.get(output_key(participant.id, outputs[0].public_key))
        assert DKGOutput.model_validate(stored) == result[participant.id]


@pytest.mark.asyncio
async def test_dkg_phases_without_complaints(make_participants, make_task):
    participants = make_participants(3)
    task = make_task(participants, 2)
    group = Group(
        index=task.group_index,
        size=task.size,
        threshold=task.threshold,
        state=GroupState.COMMITTING,
        members=task.members,
    )
    board = InMemoryBoard(range(3))

    async def run(participant):
        phase1 = await DKG(participant.key, group, session_id=b"phases").run(board)
        assert isinstance(phase1, Phase1)
        phase2 = await phase1.run(board)
        assert isinstance(phase2, Phase2)
        return await phase2.run(board)

    outputs = await asyncio.gather(*(run(participant) for participant in participants))
    assert all(isinstance(output, DKGOutput) for output in outputs)
    assert len({output.public_key for output in outputs}) == 1
    assert [output.share.index for output in outputs] == [0, 1, 2]


@pytest.mark.asyncio
async def test_bad_share_is_justified(make_participants, make_task):
    participants = make_participants(4)
    task = make_task(participants, 2)
    board = TamperingBoard(range(4), dealer=0, victim=1)

    result = await ClientDKG(participants, task, board=board).run()

    outputs = list(result.values())
    assert all(output.qualified == [0, 1, 2, 3] for output in outputs)
    assert all(output.public_key == joint_public_key(participants) for output in outputs)
    assert all(check_share(output) for output in outputs)


@pytest.mark.asyncio
async def test_complaint_leads_to_justification_round(make_participants, make_task):
    participants = make_participants(3)
    task = make_task(participants, 2)
    group = Group(
        index=task.group_index,
        size=task.size,
        threshold=task.threshold,
        state=GroupState.COMMITTING,
        members=task.members,
    )
    board = TamperingBoard(range(3), dealer=2, victim=0)

    async def run(participant):
        phase1 = await DKG(participant.key, group, session_id=b"complaint").run(board)
        phase2 = await phase1.run(board)
        phase3 = await phase2.run(board)
        assert isinstance(phase3, Phase3)
        assert phase3.complaints == {2: {0}}
        return await phase3.run(board)

    outputs = await asyncio.gather(*(run(participant) for participant in participants))
    assert all(output.qualified == [0, 1, 2] for output in outputs)
    assert len(board.read_all(BoardRound.JUSTIFICATIONS)[2].justifications) == 1
    assert not board.read_all(BoardRound.JUSTIFICATIONS)[0].justifications


@pytest.mark.asyncio
async def test_bad_justification_disqualifies_dealer(make_participants, make_task):
    participants = make_participants(4)
    task = make_task(participants, 2)
    board = TamperingBoard(range(4), dealer=0, victim=1, corrupt_justification=True)

    result = await ClientDKG(participants, task, board=board).run()

    outputs = list(result.values())
    assert all(output.qualified == [1, 2, 3] for output in outputs)
    assert all(output.disqualified == [0] for output in outputs)
    assert all(output.public_key == joint_public_key(participants[1:]) for output in outputs)
    assert all(check_share(output) for output in outputs)


@pytest.mark.asyncio
async def test_missing_dealer_is_excluded(make_participants, make_task):
    participants = make_participants(4, ROUND_TIMEOUT=0.5)
    task = make_task(participants, 2)
    board = InMemoryBoard(range(4))

    result = await ClientDKG(participants[:3], task, board=board).run()

    outputs = list(result.values())
    assert len(outputs) == 3
    assert all(output.qualified == [0, 1, 2] and output.disqualified == [3] for output in outputs)
    assert all(output.public_key == joint_public_key(participants[:3]) for output in outputs)
    assert board.missing(BoardRound.SHARES) == {3}


@pytest.mark.asyncio
async def test_too_few_qualified_dealers(make_participants, make_task):
    participants = make_participants(3, ROUND_TIMEOUT=0.2)
    task = make_task(participants, 3)
    board = InMemoryBoard(range(3))

    results = await asyncio.gather(
        *(participant.run_dkg(task, board) for participant in participants[:2]), return_exceptions=True
    )

    assert all(isinstance(result, InsufficientQualifiedDealersError) for result in results)


def test_dkg_rejects_non_member(make_participants, make_task):
    participants = make_participants(3)
    task = make_task(participants, 2)
    group = Group(index=1, size=3, threshold=2, state=GroupState.COMMITTING, members=task.members)
    with pytest.raises(InvalidGroupError):
        DKG(KeyPair.generate(), group)


def test_dkg_rejects_unfinished_group(make_participants, make_task):
    participants = make_participants(3)
    task = make_task(participants, 2)
    forming = Group(index=1, size=3, threshold=2, members=task.members)
    with pytest.raises(InvalidGroupError):
        DKG(participants[0].key, forming)

    partial = Group(index=1, size=3, threshold=2, state=GroupState.COMMITTING, members=task.members[:2])
    with pytest.raises(InvalidGroupError):
        DKG(participants[0].key, partial)


def test_dkg_rejects_duplicated_indices(make_participants):
    participants = make_participants(2)
    members = [Node(index=0, id=participant.id, public_key=participant.key.public_key) for participant in participants]
    group = Group(index=1, size=2, threshold=1, state=GroupState.COMMITTING, members=members)
    with pytest.raises(InvalidGroupError):
        DKG(participants[0].key, group)


def test_dealer_commitment_matches_key(make_participants, make_task):
    participants = make_participants(3)
    task = make_task(participants, 2)
    group = Group(index=1, size=3, threshold=2, state=GroupState.COMMITTING, members=task.members)
    phase0 = DKG(participants[1].key, group, session_id=b"commitment")
    assert phase0.node.index == 1
    assert g1_to_hex(phase0.public.public_key) == participants[1].key.public_key
