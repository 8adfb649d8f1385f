from fastapi import APIRouter, FastAPI, HTTPException

from randcast.custom_types import DKGTask, Group, GroupIndex, RandomnessOutput, SignatureTask
from randcast.exceptions import ControllerError

from .custom_types import CommitDKGRequest, FulfillRequest, OutcomeResponse, RandomnessRequest, RegisterRequest
from .state import get_controller

router = APIRouter(prefix="/controller", tags=["Controller"])


@router.post("/register", response_model=OutcomeResponse)
def register(register_request: RegisterRequest):
    outcome = get_controller().register(
        node_id=register_request.node_id,
        dkg_public_key=register_request.dkg_public_key,
        url=register_request.url,
        signing_address=register_request.signing_address,
    )
    return OutcomeResponse.from_outcome(outcome)


@router.post("/dkg/task", response_model=DKGTask)
def emit_dkg_task():
    try:
        return get_controller().emit_dkg_task()
    except ControllerError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/dkg/commit", response_model=OutcomeResponse)
def commit_dkg(commit_request: CommitDKGRequest):
    outcome = get_controller().commit_dkg(
        node_id=commit_request.node_id,
        group_index=commit_request.group_index,
        epoch=commit_request.epoch,
        public_key=commit_request.public_key,
        partial_public_key=commit_request.partial_public_key,
        disqualified=commit_request.disqualified,
    )
    return OutcomeResponse.from_outcome(outcome)


@router.get("/groups/{group_index}", response_model=Group)
def get_group(group_index: GroupIndex):
    try:
        return get_controller().get_group(group_index)
    except ControllerError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/request", response_model=OutcomeResponse)
def request(randomness_request: RandomnessRequest):
    return OutcomeResponse.from_outcome(get_controller().request(randomness_request.seed))


@router.post("/signature/task", response_model=SignatureTask)
def emit_signature_task():
    try:
        return get_controller().emit_signature_task()
    except ControllerError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/fulfill", response_model=OutcomeResponse)
def fulfill(fulfill_request: FulfillRequest):
    outcome = get_controller().fulfill(
        node_id=fulfill_request.node_id,
        index=fulfill_request.index,
        signature=fulfill_request.signature,
        partial_signatures=fulfill_request.partial_signatures,
    )
    return OutcomeResponse.from_outcome(outcome)


@router.get("/output", response_model=RandomnessOutput)
def get_last_output():
    try:
        return get_controller().get_last_output()
    except ControllerError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


def create_app() -> FastAPI:
    app = FastAPI(title="randcast controller")
    app.include_router(router)
    return app
