from typing import TypeAlias

from randcast.custom_types import HexStr, NodeID
from randcast.repository import RepositoryProtocol

KeyRepository: TypeAlias = RepositoryProtocol[dict]


def output_key(node_id: NodeID, public_key: HexStr) -> str:
    return node_id + public_key
