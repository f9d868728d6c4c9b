from pydantic import BaseModel
from uuid import UUID


class CurrentUser(BaseModel):
    """Identity extracted from a verified access token."""

    id: UUID
    role: str = "user"
