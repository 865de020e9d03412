import hmac

from fastapi import BackgroundTasks, Request

from ..errors import (
    InternalError,
    InvalidCredential,
    LoginRequired,
    MissingCredential,
    NotConfigured,
    StoreError,
)
from ..schemas import APIKeyRecord
from ..services.analytics import LogAnalytics
from ..services.api_keys import APIKeyService
from ..store.api_keys import APIKeyStore
from ..utils.logging import get_logger
from ..utils.timeutils import utc_now

logger = get_logger(__name__)

CREDENTIAL_COOKIE = "api_key"
CREDENTIAL_QUERY_PARAM = "api"


def extract_credential(request: Request) -> str:
    """Credential from the ``api_key`` cookie, falling back to the ``api`` query parameter.

    The cookie always wins when it is present and non-empty.
    """
    api_key = request.cookies.get(CREDENTIAL_COOKIE)
    if not api_key:
        api_key = request.query_params.get(CREDENTIAL_QUERY_PARAM)
    return api_key or ""


def prefers_html(request: Request) -> bool:
    """True when the first media type the client accepts is text/html."""
    accept = request.headers.get("accept", "")
    first = accept.split(",")[0].split(";")[0].strip().lower()
    return first == "text/html"


def get_api_key_store(request: Request) -> APIKeyStore:
    return request.app.state.api_key_store


def get_api_key_service(request: Request) -> APIKeyService:
    return request.app.state.api_key_service


def get_log_analytics(request: Request) -> LogAnalytics:
    return request.app.state.log_analytics


class UserKeyGate:
    """Authorizes requests carrying an active, issued API key.

    Store failures fail closed with a 500; they are never treated as an
    invalid key. On success ``last_used_at`` is updated after the response
    has been sent.
    """

    def __call__(
        self, request: Request, background_tasks: BackgroundTasks
    ) -> APIKeyRecord:
        api_key = extract_credential(request)
        if not api_key:
            raise MissingCredential()

        store = get_api_key_store(request)
        try:
            record = store.find_active_by_token(api_key)
        except StoreError as e:
            logger.error("auth.lookup_failed", error=str(e))
            raise InternalError() from e

        if record is None:
            raise InvalidCredential()

        background_tasks.add_task(store.mark_used, api_key, utc_now())
        return record


class MasterKeyGate:
    """Authorizes requests carrying the operator's master key."""

    def __init__(
        self,
        master_key: str,
        login_path: str = "/auth",
        dashboard_path: str = "/dashboard",
    ):
        self.master_key = master_key or ""
        self.login_path = login_path
        self.dashboard_path = dashboard_path

    def __call__(self, request: Request) -> None:
        if not self.master_key:
            raise NotConfigured()

        api_key = extract_credential(request)
        if not api_key:
            # Browsers get sent to the login page instead of a JSON error
            path = request.url.path.rstrip("/") or "/"
            if prefers_html(request) or path == self.dashboard_path:
                raise LoginRequired(self.login_path)
            raise MissingCredential(
                "Master API key is required. Provide it as 'api' query parameter "
                "or authenticate via /auth page."
            )

        if not hmac.compare_digest(api_key.encode(), self.master_key.encode()):
            raise InvalidCredential("Invalid master API key")
