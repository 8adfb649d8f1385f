"""
Joint-Feldman distributed key generation.

Every phase is an object whose ``run`` coroutine publishes this node's contribution to the
board, waits for the round to complete and returns the next phase:

    DKG (phase 0) -> Phase1 -> Phase2 -> DKGOutput | Phase3 -> DKGOutput

Phase 3 is the justification round. It is only entered when some share holder complained
about a dealer: complaints can not be decided from the public commitments alone, so the accused
dealers reveal the disputed shares and everybody checks them publicly.
"""

import logging
import operator
from dataclasses import dataclass
from functools import reduce

from cryptography.exceptions import InvalidTag

from randcast.board import InMemoryBoard
from randcast.curve import (
    SCALAR_SIZE,
    Scalar,
    curve_order,
    g1_mul_generator,
    g1_to_hex,
    random_scalar,
    scalar_from_hex,
    scalar_to_hex,
)
from randcast.custom_types import (
    BoardRound,
    BundledJustification,
    BundledResponses,
    BundledShares,
    DKGOutput,
    EncryptedShare,
    Group,
    GroupState,
    Justification,
    Node,
    Response,
    Share,
    eval_point,
)
from randcast.exceptions import (
    DeserializationError,
    InsufficientQualifiedDealersError,
    InvalidGroupError,
    ProtocolViolationError,
)
from randcast.key import KeyPair
from randcast.poly import PrivatePolynomial, PublicPolynomial, verify_share
from randcast.utils import decrypt_with_joint_key, encrypt_with_joint_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Session:
    key: KeyPair
    group: Group
    node: Node
    secret: PrivatePolynomial
    session_id: bytes
    timeout: float | None

    def associated_data(self, dealer: int, recipient: int) -> bytes:
        return self.session_id + f":{dealer}:{recipient}".encode()


class DKG:
    """Phase 0: holds this node's key and the finalized group."""

    def __init__(self, key: KeyPair, group: Group, session_id: bytes = b"", timeout: float | None = None):
        if group.state == GroupState.FORMING or not group.is_full:
            raise InvalidGroupError(f"Group {group.index} is not finalized")
        indices = [node.index for node in group.members]
        if len(set(indices)) != len(indices):
            raise InvalidGroupError(f"Group {group.index} has duplicated node indices")
        node = next((node for node in group.members if node.public_key == key.public_key), None)
        if node is None:
            raise InvalidGroupError(f"Key {key.public_key} is not a member of group {group.index}")

        secret = PrivatePolynomial.derive(key.private_scalar, group.threshold - 1, session_id)
        self._session = _Session(
            key=key, group=group, node=node, secret=secret, session_id=session_id, timeout=timeout
        )
        self.public = secret.commit()

    @property
    def node(self) -> Node:
        return self._session.node

    def _encrypt_share(self, recipient: Node) -> EncryptedShare:
        share = self._session.secret.eval(recipient.eval_point)
        ephemeral = random_scalar()
        nonce, ciphertext = encrypt_with_joint_key(
            share.to_bytes(SCALAR_SIZE, "big"),
            ephemeral,
            recipient.public_key,
            self._session.associated_data(self.node.index, recipient.index),
        )
        return EncryptedShare(
            recipient=recipient.index,
            ephemeral_key=g1_to_hex(g1_mul_generator(ephemeral)),
            nonce=nonce,
            ciphertext=ciphertext,
        )

    async def run(self, board: InMemoryBoard) -> "Phase1":
        bundle = BundledShares(
            dealer=self.node.index,
            commitments=self.public.to_hex(),
            shares=[self._encrypt_share(recipient) for recipient in self._session.group.members],
        )
        board.publish(BoardRound.SHARES, self.node.index, bundle)
        logger.debug("Node %s published its shares", self.node.index)
        return Phase1(self._session)


class Phase1:
    """Shares are published, waiting for every dealer's shares."""

    def __init__(self, session: _Session):
        self._session = session

    def _parse_commitments(self, bundle: BundledShares) -> PublicPolynomial | None:
        if len(bundle.commitments) != self._session.group.threshold:
            return None
        try:
            return PublicPolynomial.from_hex(bundle.commitments)
        except DeserializationError:
            return None

    def _decrypt_share(self, bundle: BundledShares) -> Scalar | None:
        me = self._session.node.index
        addressed = [share for share in bundle.shares if share.recipient == me]
        if len(addressed) != 1:
            return None
        encrypted = addressed[0]
        try:
            plaintext = decrypt_with_joint_key(
                encrypted.nonce,
                encrypted.ciphertext,
                self._session.key.private_scalar,
                encrypted.ephemeral_key,
                self._session.associated_data(bundle.dealer, me),
            )
        except (InvalidTag, DeserializationError, ValueError):
            return None
        share = int.from_bytes(plaintext, "big")
        if len(plaintext) != SCALAR_SIZE or share >= curve_order:
            return None
        return share

    async def run(self, board: InMemoryBoard) -> "Phase2":
        bundles = await board.wait_for_round(BoardRound.SHARES, self._session.timeout)
        me = self._session.node
        commitments: dict[int, PublicPolynomial] = {}
        shares: dict[int, Scalar] = {}
        responses = []
        for dealer in self._session.group.members:
            bundle = bundles.get(dealer.index)
            if bundle is None:
                logger.warning("Node %s: dealer %s did not publish shares", me.index, dealer.index)
                continue
            commitment = self._parse_commitments(bundle)
            if commitment is None:
                logger.warning("Node %s: dealer %s published malformed commitments", me.index, dealer.index)
                continue
            commitments[dealer.index] = commitment

            share = self._decrypt_share(bundle)
            status = share is not None and verify_share(share, me.eval_point, commitment)
            if status:
                shares[dealer.index] = share
            else:
                logger.warning("Node %s complains about the share of dealer %s", me.index, dealer.index)
            responses.append(Response(dealer=dealer.index, status=status))

        board.publish(BoardRound.RESPONSES, me.index, BundledResponses(share_holder=me.index, responses=responses))
        return Phase2(self._session, commitments, shares)


class Phase2:
    """Responses are published, waiting for every share holder's responses."""

    def __init__(self, session: _Session, commitments: dict[int, PublicPolynomial], shares: dict[int, Scalar]):
        self._session = session
        self._commitments = commitments
        self._shares = shares

    async def run(self, board: InMemoryBoard) -> "DKGOutput | Phase3":
        bundles = await board.wait_for_round(BoardRound.RESPONSES, self._session.timeout)
        complaints: dict[int, set[int]] = {}
        for share_holder, bundle in bundles.items():
            for response in bundle.responses:
                if not response.status and response.dealer in self._commitments:
                    complaints.setdefault(response.dealer, set()).add(share_holder)

        if not complaints:
            return _compute_output(self._session, self._commitments, self._shares, disqualified=set())
        logger.warning(
            "Node %s: complaints against dealers %s, entering justification round",
            self._session.node.index,
            sorted(complaints),
        )
        return Phase3(self._session, self._commitments, self._shares, complaints)


class Phase3:
    """Justification round: accused dealers reveal the disputed shares."""

    def __init__(
        self,
        session: _Session,
        commitments: dict[int, PublicPolynomial],
        shares: dict[int, Scalar],
        complaints: dict[int, set[int]],
    ):
        self._session = session
        self._commitments = commitments
        self._shares = dict(shares)
        self.complaints = complaints

    def _justify(self) -> BundledJustification:
        me = self._session.node.index
        return BundledJustification(
            dealer=me,
            justifications=[
                Justification(
                    share_holder=share_holder,
                    share=scalar_to_hex(self._session.secret.eval(eval_point(share_holder))),
                )
                for share_holder in sorted(self.complaints.get(me, ()))
            ],
        )

    def _check_justifications(self, dealer: int, share_holders: set[int], bundle: BundledJustification | None) -> bool:
        revealed = {} if bundle is None else {j.share_holder: j.share for j in bundle.justifications}
        justified = {}
        for share_holder in share_holders:
            if share_holder not in revealed:
                return False
            try:
                share = scalar_from_hex(revealed[share_holder])
            except DeserializationError:
                return False
            if not verify_share(share, eval_point(share_holder), self._commitments[dealer]):
                return False
            justified[share_holder] = share

        me = self._session.node.index
        if me in justified:
            self._shares[dealer] = justified[me]
        return True

    async def run(self, board: InMemoryBoard) -> DKGOutput:
        me = self._session.node.index
        board.publish(BoardRound.JUSTIFICATIONS, me, self._justify())
        bundles = await board.wait_for_round(BoardRound.JUSTIFICATIONS, self._session.timeout)

        disqualified = set()
        for dealer, share_holders in sorted(self.complaints.items()):
            if not self._check_justifications(dealer, share_holders, bundles.get(dealer)):
                logger.warning("Node %s disqualifies dealer %s", me, dealer)
                disqualified.add(dealer)
        return _compute_output(self._session, self._commitments, self._shares, disqualified)


def _compute_output(
    session: _Session,
    commitments: dict[int, PublicPolynomial],
    shares: dict[int, Scalar],
    disqualified: set[int],
) -> DKGOutput:
    qualified = sorted(dealer for dealer in commitments if dealer not in disqualified)
    if len(qualified) < session.group.threshold:
        raise InsufficientQualifiedDealersError(
            f"Only {len(qualified)} qualified dealers, threshold is {session.group.threshold}"
        )
    missing = [dealer for dealer in qualified if dealer not in shares]
    if missing:
        raise ProtocolViolationError(f"Qualified dealers {missing} have no verified share for this node")

    public = reduce(operator.add, (commitments[dealer] for dealer in qualified))
    share = sum(shares[dealer] for dealer in qualified) % curve_order
    me = session.node.index
    logger.info("Node %s finished DKG with qualified dealers %s", me, qualified)
    return DKGOutput(
        qualified=qualified,
        disqualified=sorted({node.index for node in session.group.members} - set(qualified)),
        public_polynomial=public.to_hex(),
        share=Share(index=me, value=scalar_to_hex(share)),
    )
