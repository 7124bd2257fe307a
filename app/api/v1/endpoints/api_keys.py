"""
API key management endpoints (operator only).
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.auth import require_admin
from app.core.exceptions import KeyServiceError, NotFoundError
from app.services.activity_service import log_activity, ActivityAction, Actor, ResourceType
from app.services.key_issuer import KeyIssuer
from app.services.key_store import KeyStore
from app.schemas.api_key import (
    APIKeyCreateRequest,
    APIKeyCreateResponse,
    APIKeyDeleteResponse,
    APIKeyListResponse,
    APIKeyResponse,
    APIKeyUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=APIKeyListResponse)
async def list_api_keys(db: Session = Depends(get_db)):
    """
    List all API keys, newest first.

    The secret is never part of the listing, only its display prefix.
    """
    try:
        keys = KeyStore(db).list_all()
        items = [APIKeyResponse.model_validate(key) for key in keys]
        logger.info(f"Listed {len(items)} API keys")
        return APIKeyListResponse(items=items, total=len(items))
    except Exception as e:
        logger.error(f"Error listing API keys: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list API keys"
        )


@router.post("", response_model=APIKeyCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    body: APIKeyCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Create a new API key.

    Returns the full key once in the response. Only its hash is stored.
    """
    issued = KeyIssuer(db).generate_key(body.name, body.description)
    api_key = issued.api_key

    log_activity(
        db=db,
        actor=Actor.OPERATOR,
        action=ActivityAction.KEY_CREATE,
        resource_type=ResourceType.API_KEY,
        resource_id=api_key.id,
        details={"name": api_key.name},
        request=request,
    )

    return APIKeyCreateResponse(
        id=api_key.id,
        key=issued.token,
        name=api_key.name,
        description=api_key.description,
        created_at=api_key.created_at,
    )


@router.get("/{key_id}", response_model=APIKeyResponse)
async def get_api_key(key_id: int, db: Session = Depends(get_db)):
    """Get a single API key (without its secret)."""
    api_key = KeyStore(db).get(key_id)
    if api_key is None:
        raise NotFoundError("API key not found")
    return APIKeyResponse.model_validate(api_key)


@router.patch("/{key_id}", response_model=APIKeyResponse)
async def update_api_key(
    key_id: int,
    body: APIKeyUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Update an API key.

    Can update name, description and the active flag. Deactivated keys stop
    authenticating immediately but keep their usage history.
    """
    try:
        api_key = KeyStore(db).update(
            key_id,
            name=body.name,
            description=body.description,
            is_active=body.active,
        )
        if api_key is None:
            raise NotFoundError("API key not found")

        logger.info(f"Updated API key: id={key_id}")
        log_activity(
            db=db,
            actor=Actor.OPERATOR,
            action=ActivityAction.KEY_UPDATE,
            resource_type=ResourceType.API_KEY,
            resource_id=key_id,
            details=body.model_dump(exclude_none=True),
            request=request,
        )
        return APIKeyResponse.model_validate(api_key)
    except (HTTPException, KeyServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating API key: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update API key"
        )


@router.delete("/{key_id}", response_model=APIKeyDeleteResponse)
async def delete_api_key(
    key_id: int,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Delete an API key.

    Key requests that referenced it keep the dangling id.
    """
    if not KeyStore(db).delete(key_id):
        raise NotFoundError("API key not found")

    logger.info(f"Deleted API key: id={key_id}")
    log_activity(
        db=db,
        actor=Actor.OPERATOR,
        action=ActivityAction.KEY_DELETE,
        resource_type=ResourceType.API_KEY,
        resource_id=key_id,
        request=request,
    )
    return APIKeyDeleteResponse(message="API key deleted successfully", id=key_id)
