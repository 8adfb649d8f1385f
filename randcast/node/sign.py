from randcast.custom_types import DKGOutput, HexStr, NodeID, PartialSignature
from randcast.exceptions import DKGOutputNotFoundError
from randcast.sig import partial_sign as scheme_partial_sign

from .repository import KeyRepository, output_key


def load_output(node_id: NodeID, public_key: HexStr, key_repo: KeyRepository) -> DKGOutput:
    data = key_repo.get(output_key(node_id, public_key))
    if data is None:
        raise DKGOutputNotFoundError(f"Node {node_id} holds no share for public key {public_key}")
    return DKGOutput.model_validate(data)


def partial_sign(node_id: NodeID, public_key: HexStr, message: bytes, key_repo: KeyRepository) -> PartialSignature:
    output = load_output(node_id, public_key, key_repo)
    return scheme_partial_sign(output.share, message)
