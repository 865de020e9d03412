from fastapi import APIRouter, Request, Response
from fastapi.responses import HTMLResponse

from ..schemas import AuthCookieResponse, SetAuthCookieRequest
from .dependencies import CREDENTIAL_COOKIE

router = APIRouter(prefix="/auth", tags=["Browser Authentication"])

COOKIE_MAX_AGE_SECONDS = 7 * 24 * 60 * 60  # 7 days

LOGIN_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>API Key Authentication</title>
</head>
<body>
    <h1>API Key Authentication</h1>
    <p id="message"></p>
    <form onsubmit="event.preventDefault(); submitAuth();">
        <input type="password" id="apiKey" placeholder="Enter your API key" required autocomplete="off">
        <button type="submit">Authenticate</button>
        <button type="button" onclick="clearAuth()">Clear</button>
    </form>
    <script>
        function show(text) { document.getElementById('message').textContent = text; }
        function submitAuth() {
            fetch('/auth/set', {
                method: 'POST',
                headers: {'Content-Type': 'application/json'},
                body: JSON.stringify({api_key: document.getElementById('apiKey').value.trim()})
            })
            .then(r => r.json())
            .then(data => {
                if (data.success) { window.location.href = '/dashboard'; }
                else { show('Authentication failed'); }
            });
        }
        function clearAuth() {
            fetch('/auth/clear', {method: 'POST'}).then(() => show('Authentication cleared'));
        }
    </script>
</body>
</html>
"""


@router.get("", response_class=HTMLResponse)
async def auth_page():
    """Login page that stores an API key in a cookie."""
    return HTMLResponse(LOGIN_PAGE)


@router.post("/set", response_model=AuthCookieResponse)
async def set_auth_cookie(
    body: SetAuthCookieRequest, request: Request, response: Response
):
    """Remember an API key in an HTTP-only cookie for 7 days."""
    response.set_cookie(
        CREDENTIAL_COOKIE,
        body.api_key,
        max_age=COOKIE_MAX_AGE_SECONDS,
        path="/",
        secure=request.app.state.settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return AuthCookieResponse(success=True, message="API key stored successfully")


@router.post("/clear", response_model=AuthCookieResponse)
async def clear_auth_cookie(request: Request, response: Response):
    """Expire the API key cookie immediately."""
    response.delete_cookie(
        CREDENTIAL_COOKIE,
        path="/",
        secure=request.app.state.settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return AuthCookieResponse(success=True, message="API key cleared successfully")
