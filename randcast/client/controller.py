from collections.abc import Iterable, Mapping

import httpx

from randcast.controller.custom_types import (
    CommitDKGRequest,
    FulfillRequest,
    OutcomeResponse,
    RandomnessRequest,
    RegisterRequest,
)
from randcast.custom_types import (
    AggregatedSignature,
    DKGTask,
    Group,
    GroupIndex,
    HexStr,
    NodeID,
    PartialSignature,
    RandomnessOutput,
    SignatureTask,
    TaskIndex,
)
from randcast.exceptions import ControllerError, GroupNotFoundError, NoOutputAvailableError, NoPendingTaskError


class ControllerClient:
    """Async client for the controller HTTP surface."""

    def __init__(self, base_url: str, http_client: httpx.AsyncClient | None = None, timeout: int = 10) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def _send_request(
        self, method: str, path: str, not_found: type[ControllerError] = ControllerError, **kwargs
    ) -> httpx.Response:
        res = await self.http_client.request(method, f"{self.base_url}/controller{path}", **kwargs)
        if res.status_code == httpx.codes.NOT_FOUND:
            raise not_found(res.json().get("detail", path))
        res.raise_for_status()
        return res

    async def _send_for_outcome(self, path: str, data: dict) -> bool:
        res = await self._send_request("POST", path, json=data)
        return OutcomeResponse.model_validate(res.json()).accepted

    async def register(self, node_id: NodeID, dkg_public_key: HexStr, url: str = "", signing_address: str = "") -> bool:
        data = RegisterRequest(node_id=node_id, dkg_public_key=dkg_public_key, url=url, signing_address=signing_address)
        return await self._send_for_outcome("/register", data.model_dump(mode="json"))

    async def emit_dkg_task(self) -> DKGTask:
        res = await self._send_request("POST", "/dkg/task", not_found=NoPendingTaskError)
        return DKGTask.model_validate(res.json())

    async def commit_dkg(
        self,
        node_id: NodeID,
        group_index: GroupIndex,
        epoch: int,
        public_key: HexStr,
        partial_public_key: HexStr,
        disqualified: Iterable[NodeID] = (),
    ) -> bool:
        data = CommitDKGRequest(
            node_id=node_id,
            group_index=group_index,
            epoch=epoch,
            public_key=public_key,
            partial_public_key=partial_public_key,
            disqualified=list(disqualified),
        )
        return await self._send_for_outcome("/dkg/commit", data.model_dump(mode="json"))

    async def get_group(self, group_index: GroupIndex) -> Group:
        res = await self._send_request("GET", f"/groups/{group_index}", not_found=GroupNotFoundError)
        return Group.model_validate(res.json())

    async def request(self, seed: str) -> bool:
        return await self._send_for_outcome("/request", RandomnessRequest(seed=seed).model_dump(mode="json"))

    async def emit_signature_task(self) -> SignatureTask:
        res = await self._send_request("POST", "/signature/task", not_found=NoPendingTaskError)
        return SignatureTask.model_validate(res.json())

    async def fulfill(
        self,
        node_id: NodeID,
        index: TaskIndex,
        signature: AggregatedSignature,
        partial_signatures: Mapping[NodeID, PartialSignature],
    ) -> bool:
        data = FulfillRequest(
            node_id=node_id, index=index, signature=signature, partial_signatures=dict(partial_signatures)
        )
        return await self._send_for_outcome("/fulfill", data.model_dump(mode="json"))

    async def get_last_output(self) -> RandomnessOutput:
        res = await self._send_request("GET", "/output", not_found=NoOutputAvailableError)
        return RandomnessOutput.model_validate(res.json())
