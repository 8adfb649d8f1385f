from typing import Literal

from pydantic import Field, model_validator

from randcast.settings import BaseApplicationSettings


class ControllerSettings(BaseApplicationSettings):
    """Controller settings."""

    model_config = {"env_prefix": "CONTROLLER__"}

    GROUP_SIZE: int = Field(default=5, ge=1)
    THRESHOLD: int = Field(default=3, ge=1)
    COMMIT_QUORUM: Literal["all", "threshold"] = "all"
    DKG_COMMIT_TIMEOUT: float = Field(default=300.0, gt=0)
    SIGNATURE_TASK_TIMEOUT: float = Field(default=300.0, gt=0)
    INITIAL_ENTROPY: int = Field(default=0x8762_4875_6548_6346, ge=0)

    @model_validator(mode="after")
    def check_threshold(self) -> "ControllerSettings":
        if self.THRESHOLD > self.GROUP_SIZE:
            raise ValueError(f"THRESHOLD {self.THRESHOLD} can not exceed GROUP_SIZE {self.GROUP_SIZE}")
        return self
