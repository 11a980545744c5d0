"""Hall domain schemas - Pydantic models for responses"""

from pydantic import BaseModel, ConfigDict


class HallResponse(BaseModel):
    """Schema for hall directory entries"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
