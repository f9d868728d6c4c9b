from pydantic import BaseModel, ConfigDict
from uuid import UUID
from typing import Literal

Gender = Literal["male", "female"]
Status = Literal["active", "inactive"]


class HookupCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    gender: Gender


class HookupUpdate(BaseModel):
    """Pick the winner of a round."""

    model_config = ConfigDict(extra="forbid")

    user: UUID


class HookupSetStatus(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Status
