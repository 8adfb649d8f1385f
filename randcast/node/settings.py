from pydantic import Field

from randcast.custom_types import HexStr, NodeID
from randcast.settings import BaseApplicationSettings


class NodeSettings(BaseApplicationSettings):
    """Node settings."""

    model_config = {"env_prefix": "NODE__"}

    ID: NodeID
    PRIVATE_KEY: HexStr
    URL: str = ""
    SIGNING_ADDRESS: str = ""
    ROUND_TIMEOUT: float | None = Field(default=30.0, gt=0)
