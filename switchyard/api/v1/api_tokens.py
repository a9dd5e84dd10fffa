"""Admin management of personal API tokens (section 'tokens')."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from switchyard.api.v1.auth import require_admin
from switchyard.core.database import get_db
from switchyard.core.exceptions import (
    ApiTokenAlreadyExistsError,
    ApiTokenNotFoundError,
    InvalidApiTokenNameError,
)
from switchyard.schemas.api_tokens import (
    ApiTokenCreatedResponse,
    ApiTokenCreateRequest,
    ApiTokenDetail,
    ApiTokenItem,
    ApiTokensListResponse,
)
from switchyard.schemas.auth import CurrentUser
from switchyard.schemas.permissions import ActionType, SectionType
from switchyard.services.api_tokens import ApiTokenStore

logger = logging.getLogger(__name__)
router = APIRouter()

_TokensReader = Annotated[CurrentUser, Depends(require_admin(SectionType.TOKENS, ActionType.READ))]
_TokensWriter = Annotated[CurrentUser, Depends(require_admin(SectionType.TOKENS, ActionType.WRITE))]


def _not_found(e: ApiTokenNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.get("/tokens", response_model=ApiTokensListResponse)
def list_tokens(
    _admin: _TokensReader,
    db: Annotated[Session, Depends(get_db)],
) -> ApiTokensListResponse:
    tokens = ApiTokenStore(db).list_tokens()
    return ApiTokensListResponse(tokens=[ApiTokenItem.model_validate(t) for t in tokens])


@router.post("/tokens", response_model=ApiTokenCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_token(
    body: ApiTokenCreateRequest,
    admin: _TokensWriter,
    db: Annotated[Session, Depends(get_db)],
) -> ApiTokenCreatedResponse:
    """Create a token with its grants. The plain token is in the response and nowhere else."""
    try:
        token, plain = ApiTokenStore(db).create(body.name, body.expires_at, body.permissions)
    except ApiTokenAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e
    except InvalidApiTokenNameError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    logger.info("API token issued", extra={"token_id": token.id, "by": admin.username})
    return ApiTokenCreatedResponse(token=ApiTokenItem.model_validate(token), plain_token=plain)


@router.get("/tokens/{token_id}", response_model=ApiTokenDetail)
def get_token(
    token_id: int,
    _admin: _TokensReader,
    db: Annotated[Session, Depends(get_db)],
) -> ApiTokenDetail:
    store = ApiTokenStore(db)
    try:
        token = store.get_by_id(token_id)
    except ApiTokenNotFoundError as e:
        raise _not_found(e) from e
    item = ApiTokenItem.model_validate(token)
    return ApiTokenDetail(**item.model_dump(), permissions=store.permissions(token_id))


@router.delete("/tokens/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_token(
    token_id: int,
    admin: _TokensWriter,
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    try:
        ApiTokenStore(db).delete(token_id)
    except ApiTokenNotFoundError as e:
        raise _not_found(e) from e
    logger.info("API token revoked", extra={"token_id": token_id, "by": admin.username})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
