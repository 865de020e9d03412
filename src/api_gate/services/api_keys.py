from ..schemas import APIKeyCreatedResponse
from ..store.api_keys import APIKeyStore
from ..utils.keys import generate_api_key
from ..utils.logging import get_logger

logger = get_logger(__name__)


class APIKeyService:
    """Issues new API keys."""

    def __init__(self, store: APIKeyStore):
        self.store = store

    def issue(self, name: str) -> APIKeyCreatedResponse:
        """Generate and persist a new key.

        Generator failures, token conflicts and store errors propagate; issuance
        is never retried automatically.
        """
        token = generate_api_key()
        record = self.store.create(token, name)

        logger.info("api_key.issued", api_key_id=record.id, name=record.name)

        return APIKeyCreatedResponse(
            key=record.key,  # Return the actual key only once
            name=record.name,
            created_at=record.created_at,
        )
