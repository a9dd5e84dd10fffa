"""API token admin schemas. The plain token only ever appears in ApiTokenCreatedResponse."""

from datetime import datetime

from pydantic import BaseModel, Field

from switchyard.schemas.permissions import SubjectPermissions


class ApiTokenCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=300)
    expires_at: datetime | None = None
    permissions: SubjectPermissions = Field(default_factory=SubjectPermissions)


class ApiTokenItem(BaseModel):
    id: int
    name: str
    token_preview: str
    expires_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ApiTokenDetail(ApiTokenItem):
    permissions: SubjectPermissions


class ApiTokenCreatedResponse(BaseModel):
    """Returned once on creation; store plain_token now, it cannot be read back."""

    token: ApiTokenItem
    plain_token: str


class ApiTokensListResponse(BaseModel):
    tokens: list[ApiTokenItem]
