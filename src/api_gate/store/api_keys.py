import hashlib
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..errors import ConflictError, StoreUnavailable
from ..models.api_key import APIKey
from ..schemas import APIKeyRecord
from ..utils.logging import get_logger
from ..utils.timeutils import utc_now

logger = get_logger(__name__)

CACHE_TTL_SECONDS = 3600
REVOKED_MARKER = "revoked"


def _cache_key(token: str) -> str:
    # Never put the raw token into Redis
    return f"api_key:{hashlib.sha256(token.encode()).hexdigest()}"


class APIKeyStore:
    """Persists API key records.

    Lookups of active keys may be served from Redis when a client is given.
    The cache is optional: any Redis failure falls through to the database.
    """

    def __init__(self, session_factory: sessionmaker, redis_client=None):
        self.session_factory = session_factory
        self.redis = redis_client

    def create(self, token: str, name: str) -> APIKeyRecord:
        """Insert a new active key. Raises ConflictError if the token exists."""
        try:
            with self.session_factory() as db:
                api_key = APIKey(key=token, name=name, active=True, created_at=utc_now())
                db.add(api_key)
                db.commit()
                db.refresh(api_key)
                return APIKeyRecord.model_validate(api_key)
        except IntegrityError as e:
            raise ConflictError("API key already exists") from e
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to create API key: {e}") from e

    def find_active_by_token(self, token: str) -> Optional[APIKeyRecord]:
        """Return the record for an active key, or None.

        Unknown and deactivated keys both resolve to None.
        """
        cached = self._cache_get(token)
        if cached == REVOKED_MARKER:
            return None
        if cached:
            try:
                return APIKeyRecord.model_validate_json(cached)
            except ValueError as e:
                logger.debug("api_key.cache_entry_invalid", error=str(e))

        try:
            with self.session_factory() as db:
                api_key = db.execute(
                    select(APIKey).where(APIKey.key == token, APIKey.active.is_(True))
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to look up API key: {e}") from e

        if api_key is None:
            return None

        record = APIKeyRecord.model_validate(api_key)
        self._cache_set(token, record)
        return record

    def mark_used(self, token: str, timestamp: Optional[datetime] = None) -> None:
        """Best-effort update of ``last_used_at``. Never raises."""
        try:
            with self.session_factory() as db:
                db.execute(
                    update(APIKey)
                    .where(APIKey.key == token)
                    .values(last_used_at=timestamp or utc_now())
                )
                db.commit()
        except Exception as e:
            logger.warning("api_key.mark_used_failed", error=str(e))

    def list(self) -> List[APIKeyRecord]:
        """All keys, newest first."""
        try:
            with self.session_factory() as db:
                rows = db.execute(
                    select(APIKey).order_by(APIKey.created_at.desc(), APIKey.id.desc())
                ).scalars()
                return [APIKeyRecord.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to list API keys: {e}") from e

    def deactivate(self, token: str) -> bool:
        """Soft-delete a key. Returns False if no active key matched."""
        return self._deactivate(APIKey.key == token)

    def deactivate_by_id(self, key_id: int) -> bool:
        """Soft-delete a key by its record id. Returns False if no active key matched."""
        return self._deactivate(APIKey.id == key_id)

    def _deactivate(self, condition) -> bool:
        try:
            with self.session_factory() as db:
                token = db.execute(
                    select(APIKey.key).where(condition, APIKey.active.is_(True))
                ).scalar_one_or_none()
                if token is None:
                    return False

                result = db.execute(
                    update(APIKey)
                    .where(APIKey.key == token, APIKey.active.is_(True))
                    .values(active=False)
                )
                db.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to deactivate API key: {e}") from e

        self._cache_revoke(token)
        return result.rowcount > 0

    # -------------------------------------------------------------------------
    # Redis cache
    # -------------------------------------------------------------------------

    def _cache_get(self, token: str) -> Optional[str]:
        if not self.redis:
            return None
        try:
            return self.redis.get(_cache_key(token))
        except Exception as e:
            logger.debug("api_key.cache_get_failed", error=str(e))
        return None

    def _cache_set(self, token: str, record: APIKeyRecord) -> None:
        if not self.redis:
            return
        try:
            # nx: never overwrite a revocation marker written meanwhile
            self.redis.set(
                _cache_key(token), record.model_dump_json(), ex=CACHE_TTL_SECONDS, nx=True
            )
        except Exception as e:
            logger.debug("api_key.cache_set_failed", error=str(e))

    def _cache_revoke(self, token: str) -> None:
        if not self.redis:
            return
        try:
            self.redis.set(_cache_key(token), REVOKED_MARKER, ex=CACHE_TTL_SECONDS)
        except Exception as e:
            logger.debug("api_key.cache_revoke_failed", error=str(e))
