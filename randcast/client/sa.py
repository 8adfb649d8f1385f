import logging
from collections.abc import Mapping, Sequence

from randcast.custom_types import AggregatedSignature, Group, HexStr, NodeID, PartialSignature, SignatureTask
from randcast.exceptions import SignatureValidationError
from randcast.node.participant import Participant
from randcast.poly import PublicPolynomial
from randcast.sig import aggregate, partial_verify, verify

logger = logging.getLogger(__name__)


class SA:
    """Signature aggregator: collects partial signatures, checks them and combines a quorum of them."""

    def __init__(self, threshold: int, public_polynomial: Sequence[HexStr]):
        self.threshold = threshold
        self.public_polynomial = PublicPolynomial.from_hex(public_polynomial)
        self.public_key = public_polynomial[0]

    def collect(
        self, participants: Sequence[Participant], task: SignatureTask, group: Group
    ) -> dict[NodeID, PartialSignature]:
        return {participant.id: participant.partial_sign(task, group) for participant in participants}

    def verify_partials(
        self, message: bytes, partial_signatures: Mapping[NodeID, PartialSignature]
    ) -> dict[NodeID, PartialSignature]:
        valid = {}
        for node_id, partial_signature in partial_signatures.items():
            if partial_verify(self.public_polynomial, message, partial_signature):
                valid[node_id] = partial_signature
            else:
                logger.warning("Dropping invalid partial signature of node %s", node_id)
        return valid

    def aggregate(self, message: bytes, partial_signatures: Mapping[NodeID, PartialSignature]) -> AggregatedSignature:
        valid = self.verify_partials(message, partial_signatures)
        signature = aggregate(self.threshold, valid.values())
        if not verify(self.public_key, message, signature):
            raise SignatureValidationError("Aggregated signature does not verify under the group public key")
        return signature
