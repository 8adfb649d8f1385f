import httpx
import pytest

from randcast.client.controller import ControllerClient
from randcast.controller.controller import Controller
from randcast.controller.router import create_app
from randcast.controller.settings import ControllerSettings
from randcast.controller.state import set_controller
from randcast.curve import g1_mul_generator, g1_to_hex
from randcast.custom_types import GroupState, PartialSignature, SignatureTaskState
from randcast.exceptions import GroupNotFoundError, NoOutputAvailableError, NoPendingTaskError
from randcast.key import KeyPair
from randcast.sig import sign

GROUP_SECRET = 0xB0A7D
GROUP_KEY = g1_to_hex(g1_mul_generator(GROUP_SECRET))


@pytest.fixture
def controller():
    controller = Controller(ControllerSettings(GROUP_SIZE=2, THRESHOLD=2))
    set_controller(controller)
    return controller


@pytest.fixture
def http_client(controller):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=create_app()), base_url="http://controller")


@pytest.fixture
def client(http_client):
    return ControllerClient("http://controller", http_client=http_client)


@pytest.fixture
def keys():
    return {"node0": KeyPair.generate(), "node1": KeyPair.generate()}


async def make_available(client: ControllerClient, keys: dict[str, KeyPair]) -> None:
    for node_id, key in keys.items():
        assert await client.register(node_id, key.public_key, url=f"http://{node_id}")
    task = await client.emit_dkg_task()
    for node_id, key in keys.items():
        assert await client.commit_dkg(node_id, task.group_index, task.epoch, GROUP_KEY, key.public_key)


@pytest.mark.asyncio
async def test_register_and_emit_dkg_task(client, keys):
    for node_id, key in keys.items():
        assert await client.register(node_id, key.public_key)
    assert not await client.register("node0", KeyPair.generate().public_key)

    task = await client.emit_dkg_task()
    assert task.group_index == 1
    assert [node.id for node in task.members] == ["node0", "node1"]
    with pytest.raises(NoPendingTaskError):
        await client.emit_dkg_task()


@pytest.mark.asyncio
async def test_outcome_is_reported(http_client, client, keys):
    key = keys["node0"]
    res = await http_client.post("/controller/register", json={"node_id": "node0", "dkg_public_key": key.public_key})
    assert res.json() == {"accepted": True, "outcome": "accepted"}
    res = await http_client.post("/controller/register", json={"node_id": "node0", "dkg_public_key": key.public_key})
    assert res.json() == {"accepted": False, "outcome": "rejected"}


@pytest.mark.asyncio
async def test_get_group(client, keys):
    with pytest.raises(GroupNotFoundError):
        await client.get_group(1)

    await make_available(client, keys)

    group = await client.get_group(1)
    assert group.state == GroupState.AVAILABLE
    assert group.public_key == GROUP_KEY
    assert group.committers == ["node0", "node1"]


@pytest.mark.asyncio
async def test_randomness_round_trip(client, controller, keys):
    with pytest.raises(NoOutputAvailableError):
        await client.get_last_output()
    assert not await client.request("seed")

    await make_available(client, keys)
    assert await client.request("seed")
    task = await client.emit_signature_task()
    assert task.state == SignatureTaskState.PENDING
    with pytest.raises(NoPendingTaskError):
        await client.emit_signature_task()

    signature = sign(GROUP_SECRET, bytes.fromhex(task.message))
    partials = {"node1": PartialSignature(index=1, value="00" * 96)}
    assert await client.fulfill("node0", task.index, signature, partials)
    assert not await client.fulfill("node1", task.index, signature, {})

    output = await client.get_last_output()
    assert output.task_index == task.index
    assert output.signature == signature
    assert controller.rewards.get(task.index).partial_signers == ["node1"]
