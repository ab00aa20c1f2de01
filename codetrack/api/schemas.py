from typing import Optional

from pydantic import BaseModel, Field


class ProfileLinkRequest(BaseModel):
    username: str = Field(default='', max_length=100)


class SyncProfilesRequest(BaseModel):
    batchSize: Optional[int] = Field(default=None, ge=1, le=500)
