from enum import StrEnum
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, Field, model_validator

HexStr: TypeAlias = str
NodeID: TypeAlias = str
GroupIndex: TypeAlias = int
TaskIndex: TypeAlias = int
AggregatedSignature: TypeAlias = HexStr

__all__ = [
    "Node",
    "NodeInfo",
    "Group",
    "GroupState",
    "DKGTask",
    "DKGCommitment",
    "DKGOutput",
    "Share",
    "PartialSignature",
    "SignatureTask",
    "SignatureTaskState",
    "RandomnessOutput",
    "BoardRound",
    "BundledShares",
    "BundledResponses",
    "BundledJustification",
    "Outcome",
]


def eval_point(index: int) -> int:
    """Polynomial evaluation point of the share with the given index, zero is reserved for the secret."""
    return index + 1


class Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    id: NodeID
    public_key: HexStr

    @property
    def eval_point(self) -> int:
        return eval_point(self.index)


class NodeInfo(BaseModel):
    id: NodeID
    dkg_public_key: HexStr
    url: str = ""
    signing_address: str = ""


class GroupState(StrEnum):
    FORMING = "Forming"
    DKG_REQUESTED = "DKGRequested"
    COMMITTING = "Committing"
    AVAILABLE = "Available"


class Group(BaseModel):
    index: GroupIndex
    epoch: int = 1
    size: int
    threshold: int
    state: GroupState = GroupState.FORMING
    members: list[Node] = []
    public_key: HexStr | None = None
    committers: list[NodeID] = []
    partial_public_keys: dict[NodeID, HexStr] = {}
    disqualified: list[NodeID] = []
    faulty: list[NodeID] = []

    @model_validator(mode="after")
    def check_threshold(self) -> "Group":
        if not 1 <= self.threshold <= self.size:
            raise ValueError(f"Threshold {self.threshold} must be between 1 and group size {self.size}")
        return self

    def member(self, node_id: NodeID) -> Node | None:
        return next((node for node in self.members if node.id == node_id), None)

    @property
    def is_full(self) -> bool:
        return len(self.members) == self.size


class DKGTask(BaseModel):
    group_index: GroupIndex
    epoch: int
    size: int
    threshold: int
    members: list[Node]


class DKGCommitment(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_id: NodeID
    public_key: HexStr
    partial_public_key: HexStr
    disqualified: tuple[NodeID, ...] = ()


class Share(BaseModel):
    index: int
    value: HexStr


class DKGOutput(BaseModel):
    qualified: list[int]
    disqualified: list[int]
    public_polynomial: list[HexStr]
    share: Share

    @property
    def public_key(self) -> HexStr:
        return self.public_polynomial[0]


class PartialSignature(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    value: HexStr


class SignatureTaskState(StrEnum):
    PENDING = "Pending"
    FULFILLED = "Fulfilled"
    EXPIRED = "Expired"


class SignatureTask(BaseModel):
    index: TaskIndex
    group_index: GroupIndex
    seed: str
    message: HexStr
    state: SignatureTaskState = SignatureTaskState.PENDING


class RandomnessOutput(BaseModel):
    task_index: TaskIndex
    signature: AggregatedSignature
    value: HexStr


class BoardRound(StrEnum):
    SHARES = "shares"
    RESPONSES = "responses"
    JUSTIFICATIONS = "justifications"


class EncryptedShare(BaseModel):
    recipient: int
    ephemeral_key: HexStr
    nonce: HexStr
    ciphertext: HexStr


class BundledShares(BaseModel):
    dealer: int
    commitments: list[HexStr]
    shares: list[EncryptedShare]


class Response(BaseModel):
    dealer: int
    status: bool


class BundledResponses(BaseModel):
    share_holder: int
    responses: list[Response]


class Justification(BaseModel):
    share_holder: int
    share: HexStr


class BundledJustification(BaseModel):
    dealer: int
    justifications: list[Justification]


BoardPayload: TypeAlias = BundledShares | BundledResponses | BundledJustification


class Outcome(StrEnum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    CONFLICT = "conflict"
    FAULTY = "faulty"

    def __bool__(self) -> bool:
        return self is Outcome.ACCEPTED
