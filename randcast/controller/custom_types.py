from pydantic import BaseModel

from randcast.custom_types import AggregatedSignature, GroupIndex, HexStr, NodeID, Outcome, PartialSignature, TaskIndex


class RewardRecord(BaseModel):
    task_index: TaskIndex
    fulfiller: NodeID
    partial_signers: list[NodeID]


class RegisterRequest(BaseModel):
    node_id: NodeID
    dkg_public_key: HexStr
    url: str = ""
    signing_address: str = ""


class CommitDKGRequest(BaseModel):
    node_id: NodeID
    group_index: GroupIndex
    epoch: int
    public_key: HexStr
    partial_public_key: HexStr
    disqualified: list[NodeID] = []


class RandomnessRequest(BaseModel):
    seed: str


class FulfillRequest(BaseModel):
    node_id: NodeID
    index: TaskIndex
    signature: AggregatedSignature
    partial_signatures: dict[NodeID, PartialSignature]


class OutcomeResponse(BaseModel):
    accepted: bool
    outcome: Outcome

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> "OutcomeResponse":
        return cls(accepted=bool(outcome), outcome=outcome)
