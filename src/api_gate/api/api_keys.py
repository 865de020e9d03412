from typing import List

from fastapi import APIRouter, Depends

from ..errors import InternalError, NotFound, StoreError
from ..schemas import APIKeyCreatedResponse, APIKeyInfo, APIKeyRequest
from ..services.api_keys import APIKeyService
from ..store.api_keys import APIKeyStore
from ..utils.keys import mask_api_key
from ..utils.logging import get_logger
from .dependencies import get_api_key_service, get_api_key_store

logger = get_logger(__name__)
router = APIRouter(prefix="/api-keys", tags=["API Keys"])


@router.post("", response_model=APIKeyCreatedResponse, status_code=201)
def create_api_key(
    request: APIKeyRequest, service: APIKeyService = Depends(get_api_key_service)
):
    """Issue a new API key. The full key is only ever returned here."""
    try:
        return service.issue(request.name)
    except Exception as e:
        logger.error("api_key.issue_failed", error=str(e))
        raise InternalError("Failed to create API key") from e


@router.get("", response_model=List[APIKeyInfo])
def list_api_keys(store: APIKeyStore = Depends(get_api_key_store)):
    """List API keys, newest first, with the key itself masked."""
    try:
        records = store.list()
    except StoreError as e:
        logger.error("api_key.list_failed", error=str(e))
        raise InternalError("Failed to list API keys") from e

    return [
        APIKeyInfo(
            id=record.id,
            key=mask_api_key(record.key),
            name=record.name,
            active=record.active,
            created_at=record.created_at,
            last_used_at=record.last_used_at,
        )
        for record in records
    ]


@router.delete("/{key_id}")
def deactivate_api_key(key_id: int, store: APIKeyStore = Depends(get_api_key_store)):
    """Deactivate an API key by id. Records are kept; the key stops authorizing."""
    try:
        deactivated = store.deactivate_by_id(key_id)
    except StoreError as e:
        logger.error("api_key.deactivate_failed", key_id=key_id, error=str(e))
        raise InternalError("Failed to deactivate API key") from e

    if not deactivated:
        raise NotFound("API key not found or already inactive")

    logger.info("api_key.deactivated", key_id=key_id)
    return {"message": "API key deactivated successfully"}
